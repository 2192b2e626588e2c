import logging
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoRegionError

from rds_port_forward.cli import CliManager, main
from rds_port_forward.exceptions import (
    InteractionAborted,
    NoClustersFound,
    ResolverStateError,
)
from rds_port_forward.mediator import Mediator


class TestCliManager:
    def test_raw_args(self):
        mediator = Mediator()
        CliManager(
            ["--cluster", "prod", "--db-host", "db.internal", "--local-port", "15432"],
            mediator,
        )

        assert mediator.raw_args["cluster"] == "prod"
        assert mediator.raw_args["db-host"] == "db.internal"
        assert mediator.raw_args["local-port"] == "15432"
        assert mediator.raw_args["service"] is None
        assert mediator.verbose is False
        assert mediator.processed_args == {}

    def test_aws_args_are_processed(self):
        mediator = Mediator()
        CliManager(["--profile", "dev", "--region", "eu-west-1", "--verbose"], mediator)

        assert mediator.verbose is True
        assert mediator.processed_args["profile"].value == "dev"
        assert mediator.processed_args["profile"].skippable is False
        assert mediator.processed_args["region"].value == "eu-west-1"

    def test_db_host_options_conflict(self):
        with pytest.raises(SystemExit):
            CliManager(
                ["--db-host", "a", "--db-host-from-container-env", "DB_HOST"],
                Mediator(),
            )

    def test_config_defaults(self):
        mediator = Mediator()
        CliManager(
            ["--port", "3306"],
            mediator,
            {"port": "5432", "region": "eu-west-1", "verbose": True},
        )

        assert mediator.raw_args["port"] == "3306"
        assert mediator.raw_args["region"] == "eu-west-1"
        assert mediator.verbose is True

    def test_cli_db_host_flag_drops_config_counterpart(self):
        mediator = Mediator()
        CliManager(
            ["--db-host-from-container-env", "DB_HOST"],
            mediator,
            {"db-host": "db.internal"},
        )

        assert mediator.raw_args["db-host"] is None
        assert mediator.raw_args["db-host-from-container-env"] == "DB_HOST"


class TestFormatCliArgs:
    @pytest.fixture
    def cli(self):
        mediator = Mediator()
        cli = CliManager(["--profile", "dev"], mediator)
        mediator.set_arg("cluster", "prod", skippable=True)
        mediator.set_arg("service", None, skippable=True)
        mediator.set_arg("container", "app", skippable=False)
        mediator.set_arg("db-host", "db.internal", skippable=False)
        mediator.set_arg("port", "5432", skippable=False)
        return cli

    def test_full(self, cli):
        assert cli.format_cli_args("full") == (
            "\t--profile dev \\\n"
            "\t--cluster prod \\\n"
            "\t--container app \\\n"
            "\t--db-host db.internal \\\n"
            "\t--port 5432"
        )

    def test_only_required(self, cli):
        assert cli.format_cli_args("only-required") == (
            "\t--profile dev \\\n"
            "\t--container app \\\n"
            "\t--db-host db.internal \\\n"
            "\t--port 5432"
        )

    def test_only_required_is_subset(self, cli):
        full = cli.format_cli_args("full").split(" \\\n")
        required = cli.format_cli_args("only-required").split(" \\\n")
        assert set(required) <= set(full)
        assert set(full) - set(required) == {"\t--cluster prod"}

    def test_values_are_quoted(self):
        mediator = Mediator()
        cli = CliManager([], mediator)
        mediator.set_arg("db-host", "my db", skippable=False)
        assert cli.format_cli_args("full") == "\t--db-host 'my db'"

    def test_nothing_resolved(self):
        cli = CliManager([], Mediator())
        with pytest.raises(ResolverStateError, match="no collected argument data"):
            cli.format_cli_args("full")

    def test_unknown_mode(self, cli):
        with pytest.raises(ValueError, match="Unknown format mode"):
            cli.format_cli_args("short")

    def test_replay_message(self, cli):
        message = cli.replay_message()
        assert "[Required args only] rds-port-forward" in message
        assert "[Full command] rds-port-forward" in message


class TestMain:
    @pytest.fixture(autouse=True)
    def workdir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

    @pytest.fixture
    def components(self):
        with patch("rds_port_forward.cli.ConfigChecker") as checker, patch(
            "rds_port_forward.cli.AWSSessions"
        ) as sessions, patch(
            "rds_port_forward.cli.TargetResolver"
        ) as target_resolver, patch(
            "rds_port_forward.cli.ForwardingParamsResolver"
        ) as params_resolver, patch(
            "rds_port_forward.cli.run_session"
        ) as run_session:
            target_resolver.return_value.resolve.return_value = "ecs:prod_abc_123"
            params_resolver.return_value.resolve.return_value = '{"host": ["db"]}'
            run_session.return_value = 0
            yield {
                "checker": checker,
                "sessions": sessions,
                "target_resolver": target_resolver,
                "params_resolver": params_resolver,
                "run_session": run_session,
            }

    def test_success(self, components):
        assert main(["--profile", "dev", "--region", "eu-west-1"]) == 0

        components["sessions"].return_value.get_session.assert_called_once_with(
            profile_name="dev", region_name="eu-west-1"
        )
        session = components["sessions"].return_value.get_session.return_value
        args, kwargs = components["run_session"].call_args
        assert args == (session.client.return_value, "ecs:prod_abc_123", '{"host": ["db"]}')
        assert kwargs["profile_name"] == "dev"

    def test_signal_exit_code(self, components):
        components["run_session"].return_value = None
        assert main(["--profile", "dev"]) == 0

    def test_child_exit_code(self, components):
        components["run_session"].return_value = 255
        assert main(["--profile", "dev"]) == 255

    def test_aborted_prompt(self, components):
        components["target_resolver"].return_value.resolve.side_effect = (
            InteractionAborted()
        )
        assert main([]) == 130
        components["run_session"].assert_not_called()

    def test_resolution_failure(self, components):
        components["target_resolver"].return_value.resolve.side_effect = (
            NoClustersFound()
        )
        assert main([]) == 1
        components["params_resolver"].assert_not_called()

    def test_missing_config_file(self, components):
        assert main(["--config", "missing.json"]) == 1
        components["checker"].assert_not_called()

    def test_config_file_is_used(self, components, tmp_path):
        (tmp_path / "rds-port-forward.json").write_text('{"profile": "from-file"}')
        assert main([]) == 0
        components["sessions"].return_value.get_session.assert_called_once_with(
            profile_name="from-file", region_name=None
        )

    def test_aws_request_denied(self, components):
        components["target_resolver"].return_value.resolve.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "denied"}},
            "ListClusters",
        )
        assert main(["--profile", "dev"]) == 1
        components["run_session"].assert_not_called()

    def test_no_region_configured(self, components):
        session = components["sessions"].return_value.get_session.return_value
        session.client.side_effect = NoRegionError()
        assert main([]) == 1
        components["target_resolver"].assert_not_called()

    def test_verbose_stays_out_of_botocore(self, components):
        assert main(["--profile", "dev", "--verbose"]) == 0
        assert logging.getLogger("rds_port_forward").level == logging.DEBUG
        assert logging.getLogger("rds-port-forward").level == logging.DEBUG
        assert logging.getLogger("botocore").getEffectiveLevel() > logging.DEBUG

    def test_default_log_level(self, components):
        assert main(["--profile", "dev"]) == 0
        assert logging.getLogger("rds_port_forward").level == logging.INFO
