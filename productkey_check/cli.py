import argparse
import csv
import logging
import os
import sys

from .aggregator import KeyAggregator
from .config import DEFAULT_PRODUKEY_PATH, DEFAULT_TIMEOUT, Options, QueryContext, load_credential
from .errors import ConfigurationError
from .management import WmiManagement
from .records import output_columns


def build_parser():
    parser = argparse.ArgumentParser(description='Collect Windows product keys from multiple hosts.')
    parser.add_argument('hostnames', nargs='*', help='Hostnames or IPs to process')
    parser.add_argument('--host-file', default='host.txt', help='File with one hostname or IP per line')
    parser.add_argument('--show-only-valid', action='store_true', help='Leave out unreachable hosts, errors and keys not found')
    parser.add_argument('--dont-enable-remote-registry', action='store_true', help='Never start the Remote Registry service')
    parser.add_argument('--skip-reg-product-key', action='store_true', help='Do not decode DigitalProductId from the registry')
    parser.add_argument('--skip-default-product-keys', action='store_true', help='Do not read the DefaultProductKey registry paths')
    parser.add_argument('--skip-oem-info', action='store_true', help='Leave the Manufacturer and Model columns out')
    parser.add_argument('--skip-produkey', action='store_true', help='Do not run ProduKey')
    parser.add_argument('--produkey-path', default=DEFAULT_PRODUKEY_PATH, help='Path to ProduKey.exe')
    parser.add_argument('--username', help='Account used for remote WMI access (DOMAIN\\user)')
    parser.add_argument('--password-file', help='File holding the password for --username; prompted for when omitted')
    parser.add_argument('--timeout', type=int, default=DEFAULT_TIMEOUT, help='Timeout in seconds for ProduKey runs')
    parser.add_argument('--workers', type=int, default=min(32, (os.cpu_count() or 1) + 4), help='Hosts queried in parallel')
    parser.add_argument('--output', default='results.csv', help='CSV file the keys are written to')
    parser.add_argument('--append', action='store_true', help='Append to the output file instead of overwriting')
    parser.add_argument('--log-file', default='debug.log', help='Debug log file')
    return parser


def load_hostnames(args, prompt=input):
    """Hostnames from the command line, the host file, or the user."""
    if args.hostnames:
        hostnames = [h.strip() for h in args.hostnames if h.strip()]
    elif os.path.exists(args.host_file):
        with open(args.host_file, 'r') as f:
            hostnames = [line.strip() for line in f if line.strip()]
    else:
        user_input = prompt('Enter hostname or IP: ').strip()
        hostnames = [user_input or 'localhost']
    if not hostnames:
        raise ConfigurationError('No hostnames to process.')
    return hostnames


def build_options(args, credential=None):
    if args.timeout <= 0:
        raise ConfigurationError('--timeout must be positive.')
    if args.workers <= 0:
        raise ConfigurationError('--workers must be positive.')
    return Options(
        show_only_valid=args.show_only_valid,
        dont_enable_remote_registry=args.dont_enable_remote_registry,
        skip_reg_product_key=args.skip_reg_product_key,
        skip_default_product_keys=args.skip_default_product_keys,
        skip_oem_info=args.skip_oem_info,
        skip_produkey=args.skip_produkey,
        produkey_path=args.produkey_path,
        timeout=args.timeout,
        credential=credential,
    )


def write_results(path, records, skip_oem_info=False, append=False):
    mode = 'a' if append else 'w'
    file_exists = os.path.exists(path)

    with open(path, mode, newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=output_columns(skip_oem_info), lineterminator='\n')
        if mode == 'w' or not file_exists:
            writer.writeheader()
        for record in records:
            writer.writerow(record.as_row(skip_oem_info))


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(filename=args.log_file, level=logging.DEBUG, format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        hostnames = load_hostnames(args)
        credential = load_credential(args.username, args.password_file)
        options = build_options(args, credential)
    except ConfigurationError as e:
        parser.error(str(e))

    context = QueryContext(options, WmiManagement(credential))
    aggregator = KeyAggregator(context)

    results = []
    for hostname, records in aggregator.query_hosts(hostnames, max_workers=args.workers):
        logging.info(f'{hostname}: {len(records)} record(s)')
        results.extend(records)

    write_results(args.output, results, options.skip_oem_info, args.append)

    print(f'Processing complete. Results saved to {args.output}.')
    for record in results:
        row = record.as_row(options.skip_oem_info)
        print(f"{row['ComputerName']}\t{row['ProductKey']}\t{row['SLPLicenseStatus']}\t{row['Source']}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
