import argparse
import getpass
import os
import sys
import textwrap
import time
from typing import Optional

import secretstore
from secretstore import ArgumentError, ReportingException
from secretstore._output import TerminalBackend, output
from secretstore.codec import display, serialize
from secretstore.config import Config
from secretstore.operations import (
    del_record,
    extract,
    format_date,
    set_record,
    sorted_listing,
)
from secretstore.store import SecretStore

EPILOG = textwrap.dedent(
    """
    examples:
      secretstore set my_secret_key my_secret
      secretstore get my_secret_key
      secretstore del my_secret_key
      secretstore list
      secretstore dump

    environment:
      SECRETS_PATH          secrets file (default: ~/.secrets)
      SECRETS_GPG_PATH      gpg binary (default: gpg2 or gpg from PATH)
      SECRETS_GPG_ARGS      extra arguments passed to gpg
      SECRETS_GPG_KEY       key ID to sign and encrypt with
      SECRETS_LIST_FORMAT   format of 'list' lines (default: {key:<50} {date})
      SECRETS_DATE_FORMAT   strftime format of 'list' dates
    """
)


class ArgumentParser(argparse.ArgumentParser):

    def error(self, message):
        raise ArgumentError.from_context(self.prog, message)


def read_value(key: str) -> bytes:
    if sys.stdin.isatty():
        return os.fsencode(getpass.getpass(f"Value for {key}: "))
    value = sys.stdin.buffer.read()
    if value.endswith(b"\n"):
        value = value[:-1]
    return value


def set_secret(config: Config, key: str, value: Optional[str] = None):
    """Store a secret, replacing an existing one with the same key."""
    key_ = os.fsencode(key)
    value_ = os.fsencode(value) if value is not None else read_value(key)
    with SecretStore(config.path, config.backend(), writeable=True) as store:
        store.write(
            set_record(store.read(), key_, value_, int(time.time()))
        )


def get_secret(config: Config, key: str):
    """Print a secret. Prints nothing if the key is unknown."""
    with SecretStore(config.path, config.backend()) as store:
        value = extract(store.read(), os.fsencode(key))
    if value is not None:
        sys.stdout.buffer.write(value + b"\n")
        sys.stdout.flush()


def del_secret(config: Config, key: str):
    """Forget a secret."""
    with SecretStore(config.path, config.backend(), writeable=True) as store:
        store.write(del_record(store.read(), os.fsencode(key)))


def list_secrets(config: Config):
    """Print all keys with their modification dates, sorted by key."""
    with SecretStore(config.path, config.backend()) as store:
        listing = sorted_listing(store.read())
    for key, modified_at in listing:
        print(
            config.list_format.format(
                key=display(key),
                date=format_date(modified_at, config.date_format),
            )
        )


def dump_secrets(config: Config):
    """Write the decrypted store to stdout."""
    with SecretStore(config.path, config.backend()) as store:
        plaintext = serialize(store.read())
    sys.stdout.buffer.write(plaintext)
    sys.stdout.flush()


def make_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="secretstore",
        description=(
            "secretstore v{}: a simple secrets manager using GPG"
        ).format(secretstore.__version__),
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.set_defaults(func=None)
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug mode."
    )

    subparsers = parser.add_subparsers(metavar="operation")

    p = subparsers.add_parser("set", help="Store a secret.")
    p.add_argument("key", help="The secret's name.")
    p.add_argument(
        "value",
        nargs="?",
        help="The secret. Prompted for (or read from stdin) if omitted.",
    )
    p.set_defaults(func=set_secret)

    p = subparsers.add_parser("get", help="Retrieve a secret.")
    p.add_argument("key", help="The secret's name.")
    p.set_defaults(func=get_secret)

    p = subparsers.add_parser("del", help="Forget a secret.")
    p.add_argument("key", help="The secret's name.")
    p.set_defaults(func=del_secret)

    p = subparsers.add_parser("list", help="List all secrets.")
    p.set_defaults(func=list_secrets)

    p = subparsers.add_parser("dump", help="Dump the decrypted database.")
    p.set_defaults(func=dump_secrets)

    p = subparsers.add_parser(
        "help", aliases=["usage"], help="Show this help."
    )
    p.set_defaults(func=None)

    return parser


def main(args: Optional[list] = None, environ=None) -> int:
    output.backend = TerminalBackend()
    parser = make_parser()
    try:
        args = parser.parse_args(args)
    except ArgumentError as e:
        e.report()
        parser.print_usage(sys.stderr)
        return e.exitcode

    # Consume global arguments
    output.enable_debug = args.debug

    if args.func is None:
        parser.print_help()
        return 0

    func_args = dict(args._get_kwargs())
    func = func_args.pop("func")
    del func_args["debug"]
    config = Config.from_environment(
        os.environ if environ is None else environ
    )
    try:
        func(config, **func_args)
    except ReportingException as e:
        e.report()
        return e.exitcode
    return 0
