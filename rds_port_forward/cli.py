import argparse
import logging
import shlex
import sys

from botocore.exceptions import BotoCoreError, ClientError

from .aws_sessions import AWSSessions
from .checker import ConfigChecker
from .config_loader import ConfigLoader
from .exceptions import InteractionAborted, PortForwardError, ResolverStateError
from .forwarding_params import ForwardingParamsResolver
from .inventory import ECSInventory
from .mediator import Mediator
from .session import run_session
from .target_resolver import TargetResolver

SCRIPT_NAME = "rds-port-forward"

ARG_KEYS = (
    "cluster",
    "service",
    "container",
    "db-host",
    "db-host-from-container-env",
    "port",
    "local-port",
    "profile",
    "region",
)
CONFLICTING_ARGS = ("db-host", "db-host-from-container-env")
AWS_CLI_ARGS = ("profile", "region")
FORMAT_MODES = ("full", "only-required")

logger = logging.getLogger(SCRIPT_NAME)


def build_parser():
    parser = argparse.ArgumentParser(
        prog=SCRIPT_NAME,
        description="Forward a local port to a DB host through an ECS container",
    )
    parser.add_argument(
        "--cluster", help="Name of the ECS cluster where target resides"
    )
    parser.add_argument(
        "--service",
        help="Name (fuzzy) of the service that hosts target task. "
        "Recommended to use when dealing with big clusters with lots of tasks",
    )
    parser.add_argument(
        "--container",
        help="Name of the container that will be used to forward the port",
    )
    db_host = parser.add_mutually_exclusive_group()
    db_host.add_argument(
        "--db-host",
        help="Hostname (or IP address) of the DB instance to which the local "
        "port will be forwarded",
    )
    db_host.add_argument(
        "--db-host-from-container-env",
        help="Target container's environment variable whose value points to "
        "the DB hostname (or IP)",
    )
    parser.add_argument("--port", help="Remote port to forward traffic to")
    parser.add_argument(
        "--local-port", help="Port on your machine that will listen to requests"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Print more logs for debugging",
    )
    parser.add_argument("--profile", help="AWS CLI profile to use")
    parser.add_argument("--region", help="AWS region for the request")
    parser.add_argument(
        "--config",
        help="JSON file with default values for the options above "
        "(default: ./rds-port-forward.json if present)",
    )
    return parser


class CliManager:
    """Handles the CLI interface and turns resolved arguments back into a command."""

    def __init__(self, argv, mediator: Mediator, config=None):
        self.mediator = mediator
        parsed = vars(build_parser().parse_args(argv))
        self.apply(parsed, config or {})

    def apply(self, parsed, config):
        """Fill raw args from parsed flags, falling back to config defaults."""
        config = dict(config)
        if any(parsed.get(key.replace("-", "_")) for key in CONFLICTING_ARGS):
            for key in CONFLICTING_ARGS:
                config.pop(key, None)

        self.mediator.raw_args = {
            key: parsed.get(key.replace("-", "_")) or config.get(key)
            for key in ARG_KEYS
        }
        verbose = parsed.get("verbose")
        if verbose is None:
            verbose = config.get("verbose", False)
        self.mediator.verbose = bool(verbose)
        for key in AWS_CLI_ARGS:
            if self.mediator.raw_args[key]:
                self.mediator.set_arg(key, self.mediator.raw_args[key], skippable=False)

    @property
    def equivalent(self):
        """The processed args committed to the mediator by the resolvers."""
        if not self.mediator.processed_args:
            raise ResolverStateError(
                "There is no collected argument data from resolvers"
            )
        return self.mediator.processed_args

    def format_cli_args(self, mode):
        """Format CLI arguments that can be used for repeat invocations.

        ``mode`` is 'full' or 'only-required'; the latter leaves out the
        arguments that would be inferred again anyway.
        """
        if mode not in FORMAT_MODES:
            raise ValueError(f"Unknown format mode '{mode}'")
        lines = []
        for key, arg in self.equivalent.items():
            if not arg.value or (mode == "only-required" and arg.skippable):
                continue
            lines.append(f"\t--{key} {shlex.quote(arg.value)}")
        return " \\\n".join(lines)

    def replay_message(self):
        required = self.format_cli_args("only-required")
        full = self.format_cli_args("full")
        return "\n\n".join(
            [
                "You can start an identical session next time by running:",
                f"[Required args only] {SCRIPT_NAME} \\\n{required}",
                f"[Full command] {SCRIPT_NAME} \\\n{full}",
            ]
        )


def _load_config(argv):
    # --config has to be known before the rest of the flags are merged
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config")
    known, _ = pre.parse_known_args(argv)
    return ConfigLoader(known.config).load_config()


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
PACKAGE_LOGGERS = ("rds_port_forward", SCRIPT_NAME)


def configure_logging(verbose=False):
    # The root logger stays at its default level so botocore stays quiet
    logging.basicConfig(format=LOG_FORMAT)
    level = logging.DEBUG if verbose else logging.INFO
    for name in PACKAGE_LOGGERS:
        logging.getLogger(name).setLevel(level)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    mediator = Mediator()
    try:
        config = _load_config(argv)
        cli = CliManager(argv, mediator, config)
    except PortForwardError as e:
        configure_logging()
        logger.error(e)
        return 1

    configure_logging(mediator.verbose)

    try:
        ConfigChecker().validate_all()
        session = AWSSessions().get_session(
            profile_name=mediator.raw_args["profile"],
            region_name=mediator.raw_args["region"],
        )
        inventory = ECSInventory(session.client("ecs"))

        target = TargetResolver(inventory, mediator).resolve()
        params = ForwardingParamsResolver(inventory, mediator).resolve()

        logger.info(cli.replay_message())
        exit_code = run_session(
            session.client("ssm"),
            target,
            params,
            logger=logger,
            profile_name=mediator.raw_args["profile"],
        )
    except InteractionAborted:
        logger.info("Aborted by user")
        return 130
    except ResolverStateError:
        raise
    except PortForwardError as e:
        logger.error(e)
        return 1
    except (BotoCoreError, ClientError) as e:
        logger.error(f"AWS request failed: {e}")
        return 1
    return exit_code or 0
