"""Tests for site orchestration and environment composition."""
import pytest
from docker.models.containers import ExecResult as DockerExecResult

from kana.core.errors import DatabaseNotReady, MountPrepFailure
from kana.core.site import (
    SiteOrchestrator,
    application_spec,
    build_environment,
    build_labels,
    command_spec,
)


DB_BLOCK = [
    "WORDPRESS_DB_HOST=kana-acme-database",
    "WORDPRESS_DB_USER=wordpress",
    "WORDPRESS_DB_PASSWORD=wordpress",
    "WORDPRESS_DB_NAME=wordpress",
]


class TestBuildEnvironment:

    def test_sqlite_sets_mode_flag_without_database_variables(self, make_site):
        env = build_environment(make_site(database="sqlite", environment=""))

        assert env == ["IS_KANA_ENVIRONMENT=true", "KANA_SQLITE=true"]
        assert not any(var.startswith("WORDPRESS_DB_") for var in env)

    def test_mariadb_adds_connection_block(self, make_site):
        env = build_environment(make_site(environment=""))

        assert env == ["IS_KANA_ENVIRONMENT=true"] + DB_BLOCK

    def test_optional_flags_follow_in_declared_order(self, make_site):
        env = build_environment(make_site(
            automatic_login=True,
            wp_debug=True,
            script_debug=True,
            environment="development",
        ))

        assert env[:5] == ["IS_KANA_ENVIRONMENT=true"] + DB_BLOCK
        assert env[5:] == [
            "KANA_ADMIN_LOGIN=true",
            "WORDPRESS_DEBUG=1",
            "WORDPRESS_CONFIG_EXTRA=define( 'WP_ENVIRONMENT_TYPE', 'development' );"
            "define( 'SCRIPT_DEBUG', true );",
        ]

    def test_identical_descriptors_give_identical_lists(self, make_site):
        first = build_environment(make_site(automatic_login=True, wp_debug=True))
        second = build_environment(make_site(automatic_login=True, wp_debug=True))

        assert first == second


class TestBuildLabels:

    def test_routes_site_domain(self, make_site):
        labels = build_labels(make_site())

        assert labels["traefik.enable"] == "true"
        assert labels["traefik.http.routers.wordpress-acme.rule"] == "Host(`acme.sites.cfw.li`)"
        assert labels["traefik.http.routers.wordpress-acme-http.rule"] == "Host(`acme.sites.cfw.li`)"
        assert labels["traefik.http.routers.wordpress-acme.tls"] == "true"
        assert labels["kana.site"] == "acme"

    def test_labels_are_pure(self, make_site):
        site = make_site()
        assert build_labels(site) == build_labels(site)


class TestCommandSpec:

    def test_matches_application_runtime(self, make_site):
        site = make_site(automatic_login=True, wp_debug=True)
        app = application_spec(site, [])
        cli = command_spec(site, [], ["plugin", "list"])

        assert cli.env == app.env
        assert cli.name == "kana-acme-wordpress_cli"
        assert cli.image == "wordpress:cli-php8.2"
        assert cli.command == ["wp", "--path=/var/www/html", "plugin", "list"]


class TestStart:

    def test_starts_database_before_wordpress(self, orchestrator, fake_client, make_site):
        site = make_site()

        orchestrator.start(site)

        names = [c.name for c in fake_client.containers.created]
        assert names == ["kana-acme-database", "kana-acme-wordpress"]
        assert "kana" in fake_client.networks.by_name

    def test_waits_for_database(self, orchestrator, fake_client, make_site):
        orchestrator.start(make_site())

        database = fake_client.containers.by_name["kana-acme-database"]
        command, user = database.exec_calls[0]
        assert command == [
            "mariadb-admin", "ping",
            "--host=127.0.0.1",
            "--protocol=tcp",
            "--user=wordpress",
            "--password=wordpress",
            "--silent",
        ]
        assert user == ""

    def test_optional_tools_start_after_wordpress(self, orchestrator, fake_client, make_site):
        orchestrator.start(make_site(phpmyadmin=True, mailpit=True))

        names = [c.name for c in fake_client.containers.created]
        assert names == [
            "kana-acme-database",
            "kana-acme-wordpress",
            "kana-acme-phpmyadmin",
            "kana-acme-mailpit",
        ]

    def test_removes_stale_wp_config(self, orchestrator, make_site):
        site = make_site()
        stale = site.working_directory / "wp-config.php"
        stale.write_text("<?php // old")

        orchestrator.start(site)

        assert not stale.exists()

    def test_restart_replaces_containers(self, orchestrator, fake_client, make_site):
        site = make_site()

        orchestrator.start(site)
        orchestrator.start(site)

        assert sorted(fake_client.containers.by_name) == ["kana-acme-database", "kana-acme-wordpress"]

    def test_mount_failure_aborts_before_containers(self, orchestrator, fake_client, make_site):
        site = make_site(artifact_type="plugin")
        plugins = site.working_directory / "wordpress" / "wp-content" / "plugins"
        plugins.mkdir(parents=True)
        (plugins / "acme").write_text("")

        with pytest.raises(MountPrepFailure):
            orchestrator.start(site)

        assert fake_client.containers.created == []

    def test_resets_permissions_off_linux(self, controller, fake_client, make_site):
        orchestrator = SiteOrchestrator(controller, platform="darwin", sleep=lambda s: None)

        orchestrator.start(make_site())

        wordpress = fake_client.containers.by_name["kana-acme-wordpress"]
        assert wordpress.exec_calls == [(["chown", "-R", "www-data:www-data", "/var/www/html"], "root")]


class TestWaitForDatabase:

    def test_times_out(self, controller, fake_client, make_site):
        ticks = iter(range(0, 100, 10))
        sleeps = []
        orchestrator = SiteOrchestrator(
            controller,
            db_ready_timeout=30,
            db_poll_interval=1,
            platform="linux",
            sleep=sleeps.append,
            monotonic=lambda: next(ticks),
        )
        fake_client.containers.exec_handler = lambda c, cmd, user: DockerExecResult(1, (None, b"Can't connect"))
        site = make_site()
        controller.run(orchestrator.container_specs(site, site.working_directory)[0])

        with pytest.raises(DatabaseNotReady):
            orchestrator.wait_for_database(site)

        assert sleeps == [1, 1]

    def test_succeeds_once_database_answers(self, orchestrator, controller, fake_client, make_site):
        answers = iter([1, 1, 0])
        fake_client.containers.exec_handler = lambda c, cmd, user: DockerExecResult(next(answers), (None, None))
        site = make_site()
        controller.run(orchestrator.container_specs(site, site.working_directory)[0])

        orchestrator.wait_for_database(site)

        assert len(fake_client.containers.by_name["kana-acme-database"].exec_calls) == 3


class TestStop:

    def test_stop_without_containers_succeeds(self, orchestrator, make_site):
        orchestrator.stop(make_site())

    def test_stop_removes_all_site_containers(self, orchestrator, fake_client, make_site):
        site = make_site(phpmyadmin=True)
        orchestrator.start(site)

        orchestrator.stop(site)

        assert fake_client.containers.by_name == {}


class TestRunCommand:

    def test_runs_wp_cli_and_cleans_up(self, orchestrator, fake_client, make_site):
        fake_client.containers.command_results["kana-acme-wordpress_cli"] = (0, b"8.2\n")

        code, output = orchestrator.run_command(make_site(), ["eval", "echo PHP_VERSION;"])

        assert (code, output) == (0, "8.2\n")
        created = fake_client.containers.created[-1]
        assert created.params["command"] == ["wp", "--path=/var/www/html", "eval", "echo PHP_VERSION;"]
        assert "kana-acme-wordpress_cli" not in fake_client.containers.by_name

    def test_uses_artifact_type_of_running_site(self, orchestrator, fake_client, make_site):
        orchestrator.start(make_site(artifact_type="plugin"))

        orchestrator.run_command(make_site(artifact_type="site"), ["plugin", "list"])

        created = fake_client.containers.created[-1]
        targets = [m["Target"] for m in created.params["mounts"]]
        assert "/var/www/html/wp-content/plugins/acme" in targets

    def test_non_zero_exit_is_data(self, orchestrator, fake_client, make_site):
        fake_client.containers.command_results["kana-acme-wordpress_cli"] = (1, b"Error: This does not seem to be a WordPress installation.\n")

        code, output = orchestrator.run_command(make_site(), ["option", "get", "siteurl"])

        assert code == 1
        assert output.startswith("Error:")


class TestExec:

    def test_exec_targets_wordpress_container(self, orchestrator, fake_client, make_site):
        site = make_site()
        orchestrator.start(site)
        fake_client.containers.exec_handler = lambda c, cmd, user: DockerExecResult(0, (b"www-data\n", None))

        result = orchestrator.exec(site, ["whoami"])

        assert result.stdout == "www-data\n"
        assert fake_client.containers.by_name["kana-acme-wordpress"].exec_calls[-1] == (["whoami"], "")
