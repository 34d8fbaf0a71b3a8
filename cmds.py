import argparse
import asyncio
import sys

from eventhub.gcs import GcsObjectStore
from eventhub.model.report import EXIT_OK
from eventhub.payment_proofs import delete_payment_proof, payment_proof_signed_url
from eventhub.verifier import verify_bucket
from main import settings, logger


def verify_storage(bucket_name=None, key_file=None, strict=False):
    bucket_name = bucket_name or settings.gcs_bucket_name
    config = settings.model_copy(update={"gcs_key_file": key_file}) if key_file else settings

    print('🧪 Testing GCS Connection and Configuration...\n')
    print('Key File:', config.gcs_key_file)

    store = GcsObjectStore.from_settings(config, logger)
    report = asyncio.run(verify_bucket(store, bucket_name, logger))
    print(report.render())

    exit_code = report.exit_code(strict=strict)
    if exit_code != EXIT_OK:
        print('\n🔍 Troubleshooting:', file=sys.stderr)
        for failure in report.failures + report.warnings:
            for hint in failure.remediation:
                print(f'   - {hint}', file=sys.stderr)
        print('\n📖 See GCS_SETUP_GUIDE.md for setup instructions\n', file=sys.stderr)
    else:
        print('\n🚀 Your GCS integration is ready for production!\n')

    return exit_code


def signed_url(path, minutes=15):
    store = GcsObjectStore.from_settings(settings, logger)
    print(asyncio.run(payment_proof_signed_url(store, settings.gcs_bucket_name, path, minutes)))


def delete_proof(path):
    store = GcsObjectStore.from_settings(settings, logger)
    return asyncio.run(delete_payment_proof(store, settings.gcs_bucket_name, path, logger))


def main(argv=None):
    parser = argparse.ArgumentParser(description="EventHub storage commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    verify = subparsers.add_parser("verify-storage", help="Verify the payment proof bucket")
    verify.add_argument("--bucket", help="Bucket name (default: GCS_BUCKET_NAME)")
    verify.add_argument("--key-file", help="Service account key file (default: GCS_KEY_FILE)")
    verify.add_argument("--strict", action="store_true", help="Exit non-zero on warnings")

    url = subparsers.add_parser("signed-url", help="Print a signed read URL for a payment proof")
    url.add_argument("path", help="gs:// path, storage URL or object key")
    url.add_argument("--minutes", type=int, default=settings.signed_url_minutes)

    delete = subparsers.add_parser("delete-proof", help="Delete a payment proof")
    delete.add_argument("path", help="gs:// path, storage URL or object key")

    args = parser.parse_args(argv)

    if args.command == "verify-storage":
        return verify_storage(args.bucket, args.key_file, args.strict)
    elif args.command == "signed-url":
        signed_url(args.path, args.minutes)
    elif args.command == "delete-proof":
        return EXIT_OK if delete_proof(args.path) else 1

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
