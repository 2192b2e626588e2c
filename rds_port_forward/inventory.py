import logging
from dataclasses import dataclass
from enum import Enum

from .exceptions import DescribeTasksError

# Hard limit of the ECS DescribeTasks API
DESCRIBE_TASKS_MAX_ARNS = 100


class QueryKind(Enum):
    CLUSTERS = "clusters"
    SERVICES = "services"
    TASKS = "tasks"


@dataclass(frozen=True)
class ListQuery:
    kind: QueryKind
    cluster: str | None = None
    service_name: str | None = None
    desired_status: str | None = None

    @classmethod
    def clusters(cls):
        return cls(QueryKind.CLUSTERS)

    @classmethod
    def services(cls, cluster):
        return cls(QueryKind.SERVICES, cluster=cluster)

    @classmethod
    def tasks(cls, cluster, service_name=None, desired_status="RUNNING"):
        return cls(
            QueryKind.TASKS,
            cluster=cluster,
            service_name=service_name,
            desired_status=desired_status,
        )

    def request(self):
        """Keyword arguments for the boto3 call, without pagination."""
        if self.kind is QueryKind.CLUSTERS:
            return {}
        if self.kind is QueryKind.SERVICES:
            return {"cluster": self.cluster}
        kwargs = {"cluster": self.cluster, "desiredStatus": self.desired_status}
        if self.service_name:
            kwargs["serviceName"] = self.service_name
        return kwargs


# kind -> (client method, field holding the ARNs in the response)
_LIST_OPERATIONS = {
    QueryKind.CLUSTERS: ("list_clusters", "clusterArns"),
    QueryKind.SERVICES: ("list_services", "serviceArns"),
    QueryKind.TASKS: ("list_tasks", "taskArns"),
}


def short_name(arn):
    return arn.split("/")[-1]


def batches(items, size):
    for start in range(0, len(items), size):
        yield items[start : start + size]


class ECSInventory:
    """Read-only view of ECS that hides pagination and describe batching."""

    def __init__(self, ecs_client, logger=None):
        self.ecs = ecs_client
        self.logger = logger or logging.getLogger(__name__)

    def list_arns(self, query: ListQuery) -> list[str]:
        method_name, result_key = _LIST_OPERATIONS[query.kind]
        paginator = self.ecs.get_paginator(method_name)
        arns = []
        for page in paginator.paginate(**query.request()):
            arns.extend(page.get(result_key, []))
        self.logger.debug(f"{method_name} returned {len(arns)} item(s)")
        return arns

    def describe_tasks(
        self, task_ids, cluster, batch_size: int = DESCRIBE_TASKS_MAX_ARNS
    ) -> list[dict]:
        task_ids = list(task_ids)
        tasks = []
        for batch in batches(task_ids, batch_size):
            response = self.ecs.describe_tasks(
                cluster=cluster, tasks=batch, include=["TAGS"]
            )
            failures = response.get("failures") or []
            if failures:
                raise DescribeTasksError("Failed to describe some tasks", failures)
            described = response.get("tasks") or []
            if not described:
                raise DescribeTasksError("No tasks were returned by the ECS API")
            tasks.extend(described)
        return tasks

    def describe_task_definition(self, task_definition_arn) -> dict:
        response = self.ecs.describe_task_definition(
            taskDefinition=task_definition_arn
        )
        return response["taskDefinition"]
