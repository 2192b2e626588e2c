import logging
from enum import IntEnum

from . import fuzzy
from .exceptions import (
    DescribeTasksError,
    FuzzyMatchRejected,
    NoClustersFound,
    NoContainersInTask,
    NoRunningTasks,
    NoServiceMatch,
    NoServicesFound,
    ResolverStateError,
    TaskNotFound,
)
from .inventory import ListQuery, short_name
from .prompts import Choice, confirm, select


class Phase(IntEnum):
    UNSTARTED = 0
    CLUSTER_RESOLVED = 1
    SERVICE_RESOLVED = 2
    TASK_RESOLVED = 3
    CONTAINER_RESOLVED = 4


def _tag(task, key):
    for tag in task.get("tags") or []:
        if tag.get("key") == key:
            return tag.get("value")
    return None


def _task_choice(task):
    task_id = short_name(task["taskArn"])
    definition = short_name(task.get("taskDefinitionArn", ""))
    lines = [f"Tags.Name: {_tag(task, 'Name') or '-'}", "Containers:"]
    for c in task.get("containers", []):
        lines.append(f"- {c.get('name')}; {c.get('image')}")
    return Choice(
        title=f"{definition} ({task_id})",
        value=task,
        description="\n".join(lines),
    )


class TargetResolver:
    """Resolves the ECS target passed to the SSM session plugin.

    The stages run strictly in order: cluster, optional service, task,
    container. Each stage records what it resolved on the mediator.
    """

    def __init__(self, inventory, mediator, logger=None):
        self.inventory = inventory
        self.mediator = mediator
        self.logger = logger or logging.getLogger(__name__)
        self.phase = Phase.UNSTARTED
        self.cluster_name = None
        self.service_name = None
        self.task_id = None
        self.container_runtime_id = None

    def _require(self, allowed, stage):
        if self.phase in allowed:
            return
        if self.phase > max(allowed):
            raise ResolverStateError(f"{stage} already ran for this target")
        if self.phase is Phase.UNSTARTED:
            raise ResolverStateError(
                "Cluster name is not set. Did you run resolve_cluster() first?"
            )
        raise ResolverStateError(
            "Task ID is not set. Did you run resolve_task() first?"
        )

    @property
    def target(self):
        """Target string in the format expected by the SSM session plugin."""
        if not self.cluster_name:
            raise ResolverStateError("Target cluster name is not resolved")
        if not self.task_id:
            raise ResolverStateError("Target task ID is not resolved")
        if not self.container_runtime_id:
            raise ResolverStateError("Target container runtime ID is not resolved")
        return f"ecs:{self.cluster_name}_{self.task_id}_{self.container_runtime_id}"

    def resolve(self):
        self.resolve_cluster()
        self.resolve_service(self.mediator.raw_args.get("service"))
        self.resolve_task()
        self.resolve_container()
        return self.target

    def resolve_cluster(self):
        self._require({Phase.UNSTARTED}, "resolve_cluster()")
        cluster_names = [
            short_name(arn) for arn in self.inventory.list_arns(ListQuery.clusters())
        ]
        if not cluster_names:
            raise NoClustersFound()

        hint = self.mediator.raw_args.get("cluster")
        if hint and hint in cluster_names:
            self.logger.debug(f"Using the cluster {hint} from the CLI parameters")
            self._set_cluster(hint, skippable=len(cluster_names) == 1)
            return self
        if hint:
            self.logger.warning(f"Cluster '{hint}' was not found, ignoring it")

        if len(cluster_names) == 1:
            self.logger.debug(f"There is only one cluster {cluster_names[0]}, using it")
            self._set_cluster(cluster_names[0], skippable=True)
            return self

        self.logger.debug(f"Found clusters: {', '.join(cluster_names)}")
        selected = select("Select the target ECS cluster", cluster_names)
        self._set_cluster(selected, skippable=False)
        return self

    def _set_cluster(self, name, skippable):
        self.cluster_name = name
        self.mediator.set_arg("cluster", name, skippable=skippable)
        self.mediator.set_target(cluster_name=name)
        self.phase = Phase.CLUSTER_RESOLVED

    def resolve_service(self, service_name_like=None):
        """Narrows the task search down to one service.

        Only done when a service name was supplied; the service is not part of
        the target itself.
        """
        self._require({Phase.CLUSTER_RESOLVED}, "resolve_service()")
        if not service_name_like:
            self.logger.debug("Service name not provided, skipping service resolution")
            self.mediator.set_arg("service", None, skippable=True)
            self.phase = Phase.SERVICE_RESOLVED
            return self

        service_names = [
            short_name(arn)
            for arn in self.inventory.list_arns(ListQuery.services(self.cluster_name))
        ]
        if not service_names:
            raise NoServicesFound(self.cluster_name)

        if service_name_like in service_names:
            self.logger.debug("Service name matched exactly")
            self._set_service(service_name_like, skippable=len(service_names) == 1)
            return self

        candidates = fuzzy.search(service_name_like, service_names)
        if not candidates:
            raise NoServiceMatch(service_name_like)
        if len(candidates) == 1:
            if not confirm(
                f"Found a similarly named service '{candidates[0]}', should we use it?"
            ):
                raise FuzzyMatchRejected(candidates[0])
            self._set_service(candidates[0], skippable=False)
            return self

        selected = select(
            "Multiple similarly named services found, select the one to use",
            candidates,
        )
        self.logger.debug(f"Resolved service name to {selected}")
        self._set_service(selected, skippable=False)
        return self

    def _set_service(self, name, skippable):
        self.service_name = name
        self.mediator.set_arg("service", name, skippable=skippable)
        self.phase = Phase.SERVICE_RESOLVED

    def resolve_task(self):
        self._require(
            {Phase.CLUSTER_RESOLVED, Phase.SERVICE_RESOLVED}, "resolve_task()"
        )
        task_arns = self.inventory.list_arns(
            ListQuery.tasks(self.cluster_name, service_name=self.service_name)
        )
        if not task_arns:
            raise NoRunningTasks(self.cluster_name, self.service_name)

        tasks = self.inventory.describe_tasks(task_arns, self.cluster_name)

        if len(tasks) == 1 or self.service_name:
            # Tasks of one service share a task definition, any of them will do
            self.logger.debug(
                "Service name is set, selecting the first task as target"
                if self.service_name
                else "Only one task found, using it as target"
            )
            task = tasks[0]
        else:
            task = select(
                "Select a matching task", [_task_choice(t) for t in tasks]
            )

        self.task_id = short_name(task["taskArn"])
        self.logger.debug(f"Resolved the task to {self.task_id}")
        self.mediator.set_target(
            task_id=self.task_id, task_definition=task.get("taskDefinitionArn")
        )
        self.phase = Phase.TASK_RESOLVED
        return self

    def resolve_container(self):
        self._require({Phase.TASK_RESOLVED}, "resolve_container()")
        try:
            described = self.inventory.describe_tasks([self.task_id], self.cluster_name)
        except DescribeTasksError as e:
            raise TaskNotFound(self.task_id) from e
        if not described:
            raise TaskNotFound(self.task_id)

        containers = described[0].get("containers") or []
        if not containers:
            raise NoContainersInTask(self.task_id)

        names = [c["name"] for c in containers]
        hint = self.mediator.raw_args.get("container")
        if hint and hint in names:
            self.logger.debug(f"Using the container {hint} from the CLI parameters")
            self._set_container(
                containers[names.index(hint)], skippable=len(containers) == 1
            )
            return self
        if hint:
            self.logger.warning(f"Container '{hint}' is not in the task, ignoring it")

        if len(containers) == 1:
            self.logger.debug("Task has a single container, using it as target")
            self._set_container(containers[0], skippable=True)
            return self

        if hint:
            order = fuzzy.rank(hint, names)
            containers = sorted(containers, key=lambda c: order.index(c["name"]))
        selected = select(
            "Select the container that will be used for port forwarding",
            [
                Choice(title=f"{c['name']} ({c.get('image')})", value=c)
                for c in containers
            ],
        )
        self._set_container(selected, skippable=False)
        return self

    def _set_container(self, container, skippable):
        self.container_runtime_id = container.get("runtimeId")
        self.logger.debug(f"Resolved runtime ID to {self.container_runtime_id}")
        self.mediator.set_target(container_name=container["name"])
        self.mediator.set_arg("container", container["name"], skippable=skippable)
        self.phase = Phase.CONTAINER_RESOLVED
