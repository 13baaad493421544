import argparse

from mdmbridge.config import Config


def _positive_int(value: "str") -> "int":
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv: "list[str] | None" = None) -> "Config":
    parser = argparse.ArgumentParser(
        prog="mdmbridge",
        description="Forward performance counter records as MDM metrics",
    )
    parser.add_argument(
        "input_path",
        nargs="?",
        default="-",
        help="NDJSON file with one record per line (default: stdin)",
    )
    parser.add_argument(
        "--mdm.account",
        dest="mdm_account",
        default=None,
        help="MDM account to create metrics under (default: $MDM_ACCOUNT)",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=":9186",
        help="Address to expose metrics on, empty to disable (default: :9186)",
    )
    parser.add_argument(
        "--batch.size",
        dest="batch_size",
        type=_positive_int,
        default=500,
        help="Records per batch (default: 500)",
    )
    parser.add_argument(
        "--sink",
        dest="sink",
        default="log",
        choices=["log", "prometheus"],
        help="Where metric points are sent (default: log)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    if args.mdm_account is not None:
        config.mdm_account = args.mdm_account
    config.listen_address = args.listen_address
    config.batch_size = args.batch_size
    config.sink = args.sink
    config.log_level = args.log_level
    config.input_path = args.input_path
    return config
