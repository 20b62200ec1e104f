import argparse

from quotabar.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    parser = argparse.ArgumentParser(
        prog="quotabar",
        description="Claude usage quota indicator backed by a real browser session",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=":9187",
        help="Metrics address to listen on, empty to disable (default: :9187)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=["console", "json"],
        help="Log output format (default: console)",
    )
    parser.add_argument(
        "--config.env-file",
        dest="env_file",
        default="",
        help="dotenv file with QUOTABAR_* settings, re-read on SIGHUP",
    )

    args = parser.parse_args(argv)
    config = Config.from_env(args.env_file)
    config.listen_address = args.listen_address
    config.log_level = args.log_level
    config.log_format = args.log_format
    return config
