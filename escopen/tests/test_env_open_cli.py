import json
import signal
from datetime import timedelta

import httpx
import pytest
from box import Box
from fastapi.testclient import TestClient
from typer.testing import CliRunner

from common.errors import EnvironmentRefError
from connectors.rest_environment_connector import RestEnvironmentsClient
from environments.models import Diagnostic, Environment
from environments.values import Value
from escopen.cli import app
from escopen.context import ExecutionContext
from escopen.env_ref import EnvRef, parse_env_ref
from mock_service.daemon import API_PREFIX, create_app

runner = CliRunner()


class CountingClient:
    """Stub client that counts remote calls."""

    def __init__(self, tree=None, diagnostics=None, error=None):
        self.environment = Environment(properties=Value.from_python(tree or {}).to_detailed()["value"])
        self.diagnostics = diagnostics or []
        self.error = error
        self.calls = []
        self.closed = False

    def open_environment(self, org, env_name, lifetime):
        self.calls.append(("open", org, env_name, lifetime))
        if self.error:
            raise self.error
        return "sess", self.diagnostics

    def get_open_environment(self, org, env_name, session_id):
        self.calls.append(("fetch", org, env_name, session_id))
        return self.environment

    def close(self):
        self.closed = True


def make_context(client, **settings):
    values = {"backend_url": "http://svc", "access_token": "tok", "default_org": "acme", "timeout": 5.0}
    values.update(settings)
    return ExecutionContext(settings=Box(values), client_factory=lambda _settings: client)


def invoke(client, *args, **settings):
    return runner.invoke(app, ["env", "open", *args], obj=make_context(client, **settings))


ENV_VARS = {"environmentVariables": {"B": "2", "A": "1"}}


def test_help():
    result = runner.invoke(app, ["env", "open", "--help"], obj=make_context(CountingClient()))
    assert result.exit_code == 0
    assert "Usage" in result.output
    assert "--format" in result.output


def test_json_whole_tree():
    client = CountingClient({"x": {"y": 42}})
    result = invoke(client, "acme/prod")
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"x": {"y": 42}}
    assert client.calls[0] == ("open", "acme", "prod", timedelta(hours=2))
    assert client.closed


def test_json_property_path():
    result = invoke(CountingClient({"x": {"y": 42}}), "acme/prod", "x.y")
    assert result.exit_code == 0
    assert result.stdout == "42\n"


def test_missing_property_renders_null_and_succeeds():
    result = invoke(CountingClient({"x": {"y": 42}}), "acme/prod", "x.z")
    assert result.exit_code == 0
    assert result.stdout == "null\n"


def test_dotenv():
    result = invoke(CountingClient(ENV_VARS), "acme/prod", "--format", "dotenv")
    assert result.exit_code == 0
    assert result.stdout == 'A="1"\nB="2"\n'


def test_shell():
    result = invoke(CountingClient(ENV_VARS), "acme/prod", "-f", "shell")
    assert result.exit_code == 0
    assert result.stdout == 'export A="1"\nexport B="2"\n'


def test_string_format():
    result = invoke(CountingClient({"name": "esc"}), "acme/prod", "name", "-f", "string")
    assert result.exit_code == 0
    assert result.stdout == "esc\n"


def test_default_org_is_used():
    client = CountingClient({})
    result = invoke(client, "prod", default_org="other")
    assert result.exit_code == 0
    assert client.calls[0][1:3] == ("other", "prod")


def test_lifetime_option():
    client = CountingClient({})
    result = invoke(client, "acme/prod", "--lifetime", "1h30m")
    assert result.exit_code == 0
    assert client.calls[0][3] == timedelta(hours=1, minutes=30)


@pytest.mark.parametrize("args, expected", [
    (["acme/prod", "--format", "bogus"], "bogus"),
    (["acme/prod", "x", "--format", "dotenv"], "may not be used with a property path"),
    (["acme/prod", "x", "--format", "shell"], "may not be used with a property path"),
    (["acme/prod", "a[oops"], "a[oops"),
    (["acme/prod", "--lifetime", "forever"], "forever"),
    (["prod"], "default_org"),
    (["acme/"], "invalid environment reference"),
])
def test_user_errors_make_no_remote_calls(args, expected):
    client = CountingClient(ENV_VARS)
    result = invoke(client, *args, default_org=None)
    assert result.exit_code == 1
    assert expected in result.output
    assert client.calls == []


def test_diagnostics_preempt_rendering():
    diags = [
        Diagnostic(summary="unknown property reference foo", path="values.a"),
        Diagnostic(severity="warning", summary="deprecated key"),
    ]
    client = CountingClient({"x": 1}, diagnostics=diags)
    result = invoke(client, "acme/prod")
    assert result.exit_code == 1
    assert "Diagnostics:" in result.output
    assert "values.a: unknown property reference foo" in result.output
    assert "deprecated key" in result.output
    assert [call[0] for call in client.calls] == ["open"]
    assert '"x"' not in result.output


def test_remote_error_is_reported():
    client = CountingClient(error=httpx.ConnectError("connection refused"))
    result = invoke(client, "acme/prod")
    assert result.exit_code == 1
    assert "connection refused" in result.output
    assert client.closed


def test_cancelled_context():
    client = CountingClient({"x": 1})
    ctx = make_context(client)
    ctx.cancel.set()
    result = runner.invoke(app, ["env", "open", "acme/prod"], obj=ctx)
    assert result.exit_code == 1
    assert "cancelled" in result.output
    assert client.calls == []


class InterruptingClient(CountingClient):
    """Delivers a Ctrl-C while the open request is in flight."""

    def open_environment(self, org, env_name, lifetime):
        signal.raise_signal(signal.SIGINT)
        return super().open_environment(org, env_name, lifetime)


def test_interrupt_cancels_before_fetch():
    client = InterruptingClient({"x": 1})
    before = signal.getsignal(signal.SIGINT)
    result = invoke(client, "acme/prod")
    assert result.exit_code == 1
    assert "cancelled while fetching" in result.output
    assert [call[0] for call in client.calls] == ["open"]
    assert client.closed
    assert signal.getsignal(signal.SIGINT) is before


def test_second_interrupt_raises_keyboard_interrupt():
    ctx = make_context(CountingClient())
    with pytest.raises(KeyboardInterrupt):
        with ctx.cancel_on_interrupt() as cancel:
            signal.raise_signal(signal.SIGINT)
            assert cancel.is_set()
            signal.raise_signal(signal.SIGINT)


def test_malformed_environment_is_reported():
    client = CountingClient()
    client.environment = Environment(properties={"x": "not a detailed value"})
    result = invoke(client, "acme/prod")
    assert result.exit_code == 1
    assert "invalid response from the environments service" in result.output
    assert client.closed


def test_malformed_open_response_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "abc", "diagnostics": "not a list"})

    http = httpx.Client(transport=httpx.MockTransport(handler))
    ctx = ExecutionContext(
        settings=Box(backend_url="http://svc", access_token="tok", default_org="acme", timeout=5.0),
        client_factory=lambda s: RestEnvironmentsClient(s.backend_url, s.access_token, http_client=http),
    )
    result = runner.invoke(app, ["env", "open", "acme/prod"], obj=ctx)
    assert result.exit_code == 1
    assert "invalid response from the environments service" in result.output
    assert "Traceback" not in result.output


def test_against_mock_service():
    service = create_app()
    with TestClient(service) as http:
        http.put(f"{API_PREFIX}/acme/prod", json={"properties": {
            "environmentVariables": {"value": {"TOKEN": {"value": "s3cr3t", "secret": True}}},
            "list": {"value": [{"value": "a"}, {"value": "b"}]},
        }})
        ctx = ExecutionContext(
            settings=Box(backend_url="http://testserver", access_token="tok", default_org="acme", timeout=5.0),
            client_factory=lambda s: RestEnvironmentsClient(s.backend_url, s.access_token, http_client=http),
        )
        result = runner.invoke(app, ["env", "open", "prod", "-f", "shell"], obj=ctx)
        assert result.exit_code == 0, result.output
        assert result.stdout == 'export TOKEN="s3cr3t"\n'

        result = runner.invoke(app, ["env", "open", "acme/prod", "list[1]"], obj=ctx)
        assert result.stdout == '"b"\n'

        result = runner.invoke(app, ["env", "open", "acme/missing"], obj=ctx)
        assert result.exit_code == 1
        assert "404" in result.output


@pytest.mark.parametrize("text, default_org, expected", [
    ("acme/prod", None, EnvRef("acme", "prod")),
    ("prod", "acme", EnvRef("acme", "prod")),
    ("other/prod", "acme", EnvRef("other", "prod")),
])
def test_parse_env_ref(text, default_org, expected):
    assert parse_env_ref(text, default_org) == expected
    assert str(parse_env_ref(text, default_org)) == f"{expected.org}/{expected.name}"


@pytest.mark.parametrize("text", ["", "prod", "/prod", "acme/", "a/b/c"])
def test_parse_env_ref_errors(text):
    with pytest.raises(EnvironmentRefError):
        parse_env_ref(text)


@pytest.fixture
def restore_root_logger():
    import logging

    from common.app_setup import set_print_logger

    root = logging.getLogger()
    saved = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in saved[0]:
        root.addHandler(handler)
    root.setLevel(saved[1])
    set_print_logger(None)


def test_context_built_from_settings(tmp_path, restore_root_logger):
    config = tmp_path / "config.yaml"
    config.write_text("backend_url: http://127.0.0.1:9\ndefault_org: acme\n")
    logfile = tmp_path / "log.txt"
    result = runner.invoke(
        app, ["--verbose", "env", "open", "prod", "-f", "bogus"],
        env={"ESCOPEN_CONFIG": str(config), "ESCOPEN_LOG_FILE": str(logfile)},
    )
    assert result.exit_code == 1
    assert 'unknown output format "bogus"' in result.output
    assert "bogus" in logfile.read_text()
