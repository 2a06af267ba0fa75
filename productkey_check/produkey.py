"""Run NirSoft ProduKey against a host and read its comma separated output."""
import csv
import logging
import os
import subprocess
import tempfile

from .errors import ExternalToolMissing, ExternalToolOutputMissing, ExternalToolParseError
from .records import KeyRecord, KeySource

PRODUKEY_COLUMNS = [
    'Product Name',
    'Product ID',
    'Product Key',
    'Installation Folder',
    'Service Pack',
    'Build Number',
    'Computer Name',
    'Modified Time',
]


def build_command(produkey_path, host, output_file):
    if host.is_local:
        return [produkey_path, '/scomma', output_file]
    return [produkey_path, '/remote', host.hostname, '/scomma', output_file]


def parse_output(path):
    """Read ProduKey /scomma output into a list of dicts keyed by PRODUKEY_COLUMNS."""
    rows = []
    try:
        with open(path, 'r', newline='', encoding='utf-8', errors='replace') as f:
            for line_number, row in enumerate(csv.reader(f), 1):
                if not row or not any(cell.strip() for cell in row):
                    continue
                if len(row) < len(PRODUKEY_COLUMNS):
                    raise ExternalToolParseError(
                        f'{path} line {line_number}: expected {len(PRODUKEY_COLUMNS)} columns, got {len(row)}')
                if row[0] == PRODUKEY_COLUMNS[0] and row[2] == PRODUKEY_COLUMNS[2]:
                    continue
                rows.append(dict(zip(PRODUKEY_COLUMNS, (cell.strip() for cell in row))))
    except csv.Error as e:
        raise ExternalToolParseError(f'Could not parse {path}: {e}') from e
    except OSError as e:
        raise ExternalToolOutputMissing(f'Could not read {path}: {e}') from e
    return rows


class ProduKeyAdapter:
    """One-shot ProduKey runs, one per host."""

    def __init__(self, produkey_path, timeout, run=subprocess.run):
        self.produkey_path = produkey_path
        self.timeout = timeout
        self.run = run

    def invoke(self, host, output_dir):
        """Run ProduKey and return the path of the file it wrote."""
        if not os.path.isfile(self.produkey_path):
            raise ExternalToolMissing(f'ProduKey not found at {self.produkey_path}')

        output_file = os.path.join(output_dir, f'{host.hostname}.csv')
        command = build_command(self.produkey_path, host, output_file)
        logging.info(f"Running: {' '.join(command)}")
        try:
            result = self.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolOutputMissing(f'ProduKey timed out after {self.timeout} seconds on {host.hostname}') from e
        except OSError as e:
            raise ExternalToolOutputMissing(f'ProduKey could not be started: {e}') from e

        logging.debug(f'ProduKey on {host.hostname}\nStdout:\n{result.stdout}\nStderr:\n{result.stderr}')
        if not os.path.isfile(output_file):
            raise ExternalToolOutputMissing(
                f'ProduKey exited with {result.returncode} on {host.hostname} without writing {output_file}')
        return output_file

    def query(self, context, host, info):
        """Key source: the keys ProduKey reports for a host."""
        with tempfile.TemporaryDirectory(prefix='produkey-') as output_dir:
            rows = parse_output(self.invoke(host, output_dir))

        records = []
        mismatch_warned = False
        for row in rows:
            reported = row['Computer Name']
            if reported and reported.lower() != host.hostname.lower() and not mismatch_warned:
                logging.warning(f'ProduKey reported computer name {reported} for {host.hostname}')
                mismatch_warned = True
            records.append(KeyRecord.for_host(
                host, info,
                product_name=row['Product Name'],
                product_id=row['Product ID'],
                product_key=row['Product Key'],
                source=KeySource.EXTERNAL_TOOL.label(),
            ))
        logging.info(f'ProduKey returned {len(records)} key(s) for {host.hostname}')
        return records
