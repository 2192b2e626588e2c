import json
import logging

from . import fuzzy
from .exceptions import (
    DescribeTasksError,
    EnvVarMissing,
    ForwardingParamNotSet,
    RemotePortNotSet,
    ResolverStateError,
    TaskNotFound,
)
from .prompts import Choice, Separator, confirm, number, select, text

DB_PORTS = {
    "3306": "MySQL",
    "5432": "PostgreSQL",
    "27017": "MongoDB",
    "5439": "Redshift",
}

CUSTOM_PORT = "custom"


def _env_to_dict(pairs):
    return {pair["name"]: pair.get("value", "") for pair in pairs or []}


class ForwardingParamsResolver:
    """Resolves the DB host, remote port and local port of the forwarding session."""

    def __init__(self, inventory, mediator, logger=None):
        self.inventory = inventory
        self.mediator = mediator
        self.logger = logger or logging.getLogger(__name__)
        self.db_host = None
        self.port = None
        self.local_port = None

    @property
    def parameters(self):
        if not self.db_host:
            raise ForwardingParamNotSet("host")
        if not self.port:
            raise RemotePortNotSet()
        if not self.local_port:
            raise ForwardingParamNotSet("localPort")
        return {
            "host": [self.db_host],
            "portNumber": [self.port],
            "localPortNumber": [self.local_port],
        }

    @property
    def forwarding_params(self):
        """Parameters JSON for the port forwarding session document."""
        return json.dumps(self.parameters)

    def resolve(self):
        self.resolve_db_host()
        self.resolve_remote_port()
        self.resolve_local_port()
        return self.forwarding_params

    def container_env(self) -> dict[str, str]:
        """Task definition environment of the target container, with the
        task's container overrides applied on top."""
        target = self.mediator.target
        required = [
            ("Cluster name", target.cluster_name),
            ("Container name", target.container_name),
            ("Task definition", target.task_definition),
            ("Task ID", target.task_id),
        ]
        for label, value in required:
            if not value:
                raise ResolverStateError(
                    f"{label} must be resolved before reading the container environment"
                )

        definition = self.inventory.describe_task_definition(target.task_definition)
        env = {}
        for container in definition.get("containerDefinitions", []):
            if container.get("name") == target.container_name:
                env = _env_to_dict(container.get("environment"))
                break

        try:
            tasks = self.inventory.describe_tasks([target.task_id], target.cluster_name)
        except DescribeTasksError as e:
            raise TaskNotFound(target.task_id) from e
        if not tasks:
            raise TaskNotFound(target.task_id)
        overrides = tasks[0].get("overrides", {}).get("containerOverrides", [])
        for override in overrides:
            if override.get("name") == target.container_name:
                env.update(_env_to_dict(override.get("environment")))
                break
        return env

    def resolve_db_host(self):
        raw_args = self.mediator.raw_args
        if raw_args.get("db-host"):
            self.logger.debug("Using the DB host specified in the CLI parameters")
            self._set_db_host(raw_args["db-host"])
            return self

        var_name = raw_args.get("db-host-from-container-env")
        if var_name:
            self.logger.debug(f"Resolving the DB host from container ENV {var_name}")
            env = self.container_env()
            if not env.get(var_name):
                raise EnvVarMissing(var_name, self.mediator.target.container_name)
            self._set_db_host(env[var_name])
            return self

        if confirm(
            "No DB host was supplied. Should we try to look it up in the container ENV?"
        ):
            env = self.container_env()
            if not env:
                self.logger.info("The target container doesn't have ENV defined")
            else:
                # Variables that look like hosts go first
                names = fuzzy.rank("HOST", list(env))
                host = select(
                    "Select ENV variable to use as DB host",
                    [
                        Choice(
                            title=name,
                            value=env[name],
                            description=f"{name}: {env[name]}",
                        )
                        for name in names
                    ],
                )
                self._set_db_host(host)
                return self

        self._set_db_host(text("Type in or paste the DB host address", required=True))
        return self

    def _set_db_host(self, host):
        self.db_host = host
        self.logger.debug(f"Resolved DB host to {host}")
        self.mediator.set_arg("db-host", host, skippable=False)

    def resolve_remote_port(self):
        if self.mediator.raw_args.get("port"):
            self.logger.debug("Using the DB port specified in the CLI parameters")
            self._set_port(self.mediator.raw_args["port"])
            return self

        choices = [
            Choice(title=f"{name} ({port})", value=port)
            for port, name in DB_PORTS.items()
        ]
        choices += [Separator(), Choice(title="Custom port", value=CUSTOM_PORT)]
        answer = select("Select a target port of your DB host", choices)
        if answer == CUSTOM_PORT:
            answer = number("Type in or paste the DB port number")
        self._set_port(answer)
        return self

    def _set_port(self, port):
        self.port = str(port)
        self.mediator.set_arg("port", self.port, skippable=False)

    def resolve_local_port(self):
        if self.mediator.raw_args.get("local-port"):
            self.logger.debug("Using the local port specified in the CLI parameters")
            self._set_local_port(self.mediator.raw_args["local-port"])
            return self

        if not self.port:
            raise RemotePortNotSet()
        if confirm(f"Use the same local port as the DB port ({self.port})?"):
            self._set_local_port(self.port)
            return self
        self._set_local_port(number("Type in or paste the local port"))
        return self

    def _set_local_port(self, port):
        self.local_port = str(port)
        self.mediator.set_arg("local-port", self.local_port, skippable=False)
