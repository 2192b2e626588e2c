import pytest

from rds_port_forward.exceptions import ResolverStateError
from rds_port_forward.mediator import Arg, Mediator


class TestMediator:
    def test_set_arg(self):
        mediator = Mediator()
        mediator.set_arg("cluster", "prod", skippable=True)
        assert mediator.processed_args == {"cluster": Arg("prod", True)}

    def test_arg_is_final(self):
        mediator = Mediator()
        mediator.set_arg("cluster", "prod", skippable=True)
        with pytest.raises(ResolverStateError, match="'cluster' was already resolved"):
            mediator.set_arg("cluster", "staging", skippable=False)

    def test_target_fields_are_set_once(self):
        mediator = Mediator()
        mediator.set_target(cluster_name="prod")
        assert mediator.target.cluster_name == "prod"
        with pytest.raises(ResolverStateError):
            mediator.set_target(cluster_name="other")

    def test_unknown_target_field(self):
        with pytest.raises(AttributeError):
            Mediator().set_target(service="api")

    def test_instances_do_not_share_state(self):
        first, second = Mediator(), Mediator()
        first.raw_args["cluster"] = "prod"
        first.set_arg("port", "5432", skippable=False)
        assert second.raw_args == {}
        assert second.processed_args == {}
