import base64
import importlib
import logging
import os
import stat
from dataclasses import replace
from types import SimpleNamespace

import pytest
from click.testing import CliRunner
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

from azure_service_lab.cli import cli
from azure_service_lab.core.utils import clients

from conftest import FakeSession, request_json

cli_module = importlib.import_module("azure_service_lab.cli.cli")


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI reconfigures the root logger; put pytest's handlers back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, settings, args, **kwargs):
    return runner.invoke(cli, args, obj={"settings": settings}, **kwargs)


def test_translate_prints_source_and_translation(runner, settings, monkeypatch):
    session = FakeSession()
    session.queue(200, [{"translations": [{"text": "Bonjour", "to": "fr"}]}])
    monkeypatch.setattr(cli_module, "create_translator_client",
                        lambda s: clients.create_translator_client(s, session=session))

    result = invoke(runner, settings, ["translate", "Hello", "--to", "fr"])

    assert result.exit_code == 0, result.output
    assert "Source: Hello" in result.output
    assert "Translation: Bonjour" in result.output
    assert "to=fr" in session.requests[0].url


def test_http_error_exits_with_status_and_body(runner, settings, monkeypatch):
    session = FakeSession()
    session.queue(429, '{"error":{"code":"429001","message":"Too many requests"}}')
    monkeypatch.setattr(cli_module, "create_translator_client",
                        lambda s: clients.create_translator_client(s, session=session))

    result = invoke(runner, settings, ["translate"])

    assert result.exit_code == 1
    assert "HTTP 429" in result.output
    assert "Too many requests" in result.output


def test_missing_configuration_exits_with_the_variable_name(runner, settings):
    result = invoke(runner, replace(settings, translator_key=None), ["translate"])

    assert result.exit_code == 1
    assert "AZURE_TRANSLATOR_KEY" in result.output


def test_safety_samples_analyze_every_sample_text(runner, settings, monkeypatch):
    session = FakeSession()
    for _ in range(3):
        session.queue(200, {"categoriesAnalysis": [{"category": "Violence", "severity": 4}]})
    monkeypatch.setattr(cli_module, "create_content_safety_client",
                        lambda s: clients.create_content_safety_client(s, session=session))

    result = invoke(runner, settings, ["safety", "analyze", "--samples"])

    assert result.exit_code == 0, result.output
    assert len(session.requests) == 3
    assert result.output.count("Violence: severity 4") == 3


def test_safety_without_text_is_a_usage_error(runner, settings):
    result = invoke(runner, settings, ["safety", "analyze"])

    assert result.exit_code == 2


def test_search_delete_requires_typing_confirm(runner, settings, monkeypatch):
    created = []
    monkeypatch.setattr(cli_module, "create_management_client", lambda s: created.append(s))

    result = invoke(runner, settings, ["search", "delete", "demo-search"], input="yes\n")

    assert result.exit_code == 0
    assert created == []


def test_search_delete_with_confirm_deletes(runner, settings, monkeypatch, arm_client, session):
    session.queue(200)
    monkeypatch.setattr(cli_module, "create_management_client", lambda s: arm_client)

    result = invoke(runner, settings, ["search", "delete", "demo-search"], input="confirm\n")

    assert result.exit_code == 0, result.output
    assert session.requests[0].method == "DELETE"
    assert "/searchServices/demo-search?" in session.requests[0].url


def test_aks_list_prints_one_line_per_cluster(runner, settings, monkeypatch, arm_client, session):
    session.queue(200, {"value": [
        {"name": "a", "location": "eastus", "properties": {"provisioningState": "Succeeded"}},
        {"name": "b", "location": "westus"},
    ]})
    monkeypatch.setattr(cli_module, "create_management_client", lambda s: arm_client)

    result = invoke(runner, settings, ["aks", "list"])

    assert result.exit_code == 0, result.output
    assert "a\teastus\tSucceeded" in result.output
    assert "b\twestus\t-" in result.output


def test_nodepool_create_rejects_zero_nodes(runner, settings):
    result = invoke(runner, settings, ["nodepool", "create", "--count", "0"])

    assert result.exit_code == 2


def test_search_create_sends_the_requested_sku(runner, settings, monkeypatch, arm_client, session):
    session.queue(201, {"name": "demo-search", "location": "koreacentral", "sku": {"name": "basic"}})
    monkeypatch.setattr(cli_module, "create_management_client", lambda s: arm_client)

    result = invoke(runner, settings, ["search", "create", "demo-search", "--location", "koreacentral",
                                       "--sku", "basic"])

    assert result.exit_code == 0, result.output
    body = request_json(session.requests[0])
    assert body["sku"] == {"name": "basic"}
    assert body["location"] == "koreacentral"


def test_chat_loop_answers_until_quit(runner, settings, monkeypatch):
    asked = []

    def create(**kwargs):
        asked.append(list(kwargs["messages"]))
        message = SimpleNamespace(content="Hi! How can I help?")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    monkeypatch.setattr(cli_module, "create_azure_openai_client", lambda s: client)

    result = invoke(runner, settings, ["chat"], input="hello\nquit\n")

    assert result.exit_code == 0, result.output
    assert "AI: Hi! How can I help?" in result.output
    assert len(asked) == 1
    assert asked[0][-1] == {"role": "user", "content": "hello"}


def test_chat_ends_on_end_of_input(runner, settings, monkeypatch):
    monkeypatch.setattr(cli_module, "create_azure_openai_client", lambda s: object())

    result = invoke(runner, settings, ["chat"], input="")

    assert result.exit_code == 0, result.output


def _kubeconfig_file(tmp_path):
    path = tmp_path / "kubeconfig"
    path.write_bytes(b"apiVersion: v1\nkind: Config\n")
    return str(path)


def test_kubernetes_api_errors_exit_with_status_and_body(runner, settings, monkeypatch, tmp_path):
    def conflict(*args, **kwargs):
        error = ApiException(status=409, reason="Conflict")
        error.body = '{"kind":"Status","reason":"AlreadyExists"}'
        raise error

    monkeypatch.setattr(cli_module.kube, "load_api_client", lambda kubeconfig: object())
    monkeypatch.setattr(cli_module.kube, "create_deployment", conflict)

    result = invoke(runner, settings, ["deploy", "--kubeconfig", _kubeconfig_file(tmp_path), "create"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "HTTP 409" in result.output
    assert "AlreadyExists" in result.output


def test_invalid_kubeconfig_exits_with_status_one(runner, settings, monkeypatch, tmp_path):
    def invalid(kubeconfig):
        raise ConfigException("Invalid kube-config file. No configuration found.")

    monkeypatch.setattr(cli_module.kube, "load_api_client", invalid)

    result = invoke(runner, settings, ["deploy", "--kubeconfig", _kubeconfig_file(tmp_path), "list"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "invalid kubeconfig" in result.output


@pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
def test_aks_credentials_are_written_owner_only(runner, settings, monkeypatch, arm_client, session, tmp_path):
    kubeconfig = b"apiVersion: v1\nkind: Config\n"
    session.queue(200, {"kubeconfigs": [{"name": "clusterUser",
                                         "value": base64.b64encode(kubeconfig).decode("ascii")}]})
    monkeypatch.setattr(cli_module, "create_management_client", lambda s: arm_client)
    output = tmp_path / "kc"
    output.write_bytes(b"stale")
    output.chmod(0o644)

    result = invoke(runner, settings, ["aks", "credentials", "-n", "demo", "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert output.read_bytes() == kubeconfig
    assert stat.S_IMODE(output.stat().st_mode) == 0o600
