import json


class PortForwardError(Exception):
    """Base class for every failure that aborts a resolution run."""


class ResolverStateError(PortForwardError):
    """A resolver stage was used before the stage it depends on."""


class ForwardingParamNotSet(ResolverStateError):
    def __init__(self, field):
        self.field = field
        super().__init__(f"Forwarding parameter '{field}' is not resolved yet")


class RemotePortNotSet(ForwardingParamNotSet):
    def __init__(self):
        super().__init__("port")


class NoResultsError(PortForwardError):
    """The inventory returned nothing to choose from."""


class NoClustersFound(NoResultsError):
    def __init__(self):
        super().__init__("No ECS clusters found")


class NoServicesFound(NoResultsError):
    def __init__(self, cluster):
        super().__init__(f"No services found in the cluster '{cluster}'")


class NoRunningTasks(NoResultsError):
    def __init__(self, cluster, service=None):
        where = f"cluster '{cluster}'"
        if service:
            where += f", service '{service}'"
        super().__init__(f"No running tasks found in {where}")


class NoContainersInTask(NoResultsError):
    def __init__(self, task_id):
        super().__init__(f"No containers were found inside the task '{task_id}'")


class MatchError(PortForwardError):
    """User input did not match anything, or a proposed match was declined."""


class NoServiceMatch(MatchError):
    def __init__(self, hint):
        super().__init__(f"No services matching or similar to '{hint}' were found")


class FuzzyMatchRejected(MatchError):
    def __init__(self, candidate):
        super().__init__(
            f"Cannot use the only similarly named service '{candidate}'"
        )


class EnvVarMissing(MatchError):
    def __init__(self, name, container):
        super().__init__(
            f"Environment of container '{container}' (including overrides) "
            f"has no variable named '{name}'"
        )


class InventoryDriftError(PortForwardError):
    """An entity seen earlier in the run is gone."""


class TaskNotFound(InventoryDriftError):
    def __init__(self, task_id):
        super().__init__(
            f"Task '{task_id}' was not found. Did it get stopped in the meantime?"
        )


class DescribeTasksError(PortForwardError):
    def __init__(self, message, failures=None):
        self.failures = failures or []
        if self.failures:
            message = f"{message}: {json.dumps(self.failures, indent=2, default=str)}"
        super().__init__(message)


class ConfigError(PortForwardError):
    pass


class SessionError(PortForwardError):
    pass


class InteractionAborted(Exception):
    """The user cancelled a prompt."""
