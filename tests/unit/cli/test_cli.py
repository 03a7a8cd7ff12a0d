"""Unit tests for the readyset-helm CLI.

Requirements tested:
- RS-CLI-001: template renders manifests from --set and --values overrides
- RS-CLI-002: Invalid overrides exit non-zero and print nothing on stdout
- RS-CLI-003: values, validate and schema commands
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from readyset_helm.cli import cli
from readyset_helm.cli.utils import ExitCode, chart_error_exit, error_exit
from readyset_helm.errors import TemplateNotFoundError, ValuesValidationError


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


def _documents(text: str) -> list[dict[str, Any]]:
    return [doc for doc in yaml.safe_load_all(text) if doc is not None]


class TestRootCommand:
    """Tests for the command group."""

    @pytest.mark.requirement("RS-CLI-001")
    def test_help_lists_commands(self, cli_runner: CliRunner) -> None:
        """Test -h shows every command."""
        result = cli_runner.invoke(cli, ["-h"])

        assert result.exit_code == 0
        for command in ("template", "values", "validate", "schema"):
            assert command in result.output

    @pytest.mark.requirement("RS-CLI-001")
    def test_version(self, cli_runner: CliRunner) -> None:
        """Test --version prints the program name."""
        result = cli_runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert result.output.startswith("readyset-helm ")


class TestTemplateCommand:
    """Tests for readyset-helm template."""

    @pytest.mark.requirement("RS-CLI-001")
    def test_render_with_set(self, cli_runner: CliRunner) -> None:
        """Test --set overrides reach the rendered manifests."""
        result = cli_runner.invoke(
            cli,
            [
                "template",
                "--set",
                "readyset.deployment=prod",
                "--set",
                "readyset.queryCachingMode=async",
                "-n",
                "readyset",
                "-s",
                "templates/readyset-adapter-deployment.yaml",
            ],
        )

        assert result.exit_code == 0, result.output
        docs = _documents(result.output)
        assert len(docs) == 1
        assert docs[0]["metadata"]["namespace"] == "readyset"
        adapter = docs[0]["spec"]["template"]["spec"]["containers"][-1]
        env = {entry["name"]: entry.get("value") for entry in adapter["env"]}
        assert env["QUERY_CACHING"] == "async"

    @pytest.mark.requirement("RS-CLI-001")
    def test_set_wins_over_values_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test --set items take precedence over values files."""
        values_file = tmp_path / "prod.yaml"
        values_file.write_text(
            "readyset:\n  deployment: from-file\n  queryCachingMode: in-request-path\n"
        )

        result = cli_runner.invoke(
            cli,
            [
                "template",
                "-f",
                str(values_file),
                "--set",
                "readyset.deployment=from-set",
                "-s",
                "readyset-server-service.yaml",
            ],
        )

        assert result.exit_code == 0, result.output
        docs = _documents(result.output)
        assert docs[0]["metadata"]["labels"]["app.kubernetes.io/instance"] == "from-set"

    @pytest.mark.requirement("RS-CLI-001")
    def test_release_name_prefixes_consul(self, cli_runner: CliRunner) -> None:
        """Test --release-name names the bundled Consul servers."""
        result = cli_runner.invoke(
            cli,
            [
                "template",
                "--set",
                "readyset.deployment=prod",
                "--release-name",
                "cache",
                "-s",
                "consul-server.yaml",
            ],
        )

        assert result.exit_code == 0, result.output
        names = {doc["metadata"]["name"] for doc in _documents(result.output)}
        assert names == {"cache-consul-server"}

    @pytest.mark.requirement("RS-CLI-001")
    def test_output_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test -o writes every manifest to a file."""
        out = tmp_path / "out" / "manifests.yaml"

        result = cli_runner.invoke(
            cli,
            ["template", "--set", "readyset.deployment=prod", "-o", str(out)],
        )

        assert result.exit_code == 0, result.output
        kinds = [doc["kind"] for doc in _documents(out.read_text())]
        assert "Deployment" in kinds
        assert kinds.count("StatefulSet") == 2

    @pytest.mark.requirement("RS-CLI-002")
    def test_unknown_path(self, cli_runner: CliRunner) -> None:
        """Test an unknown path exits with the validation code and names the path."""
        result = cli_runner.invoke(
            cli,
            [
                "template",
                "--set",
                "readyset.deployment=prod",
                "--set",
                "readyset.query_caching_mode=async",
            ],
        )

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "readyset.query_caching_mode: unknown value path" in result.output
        assert "kind:" not in result.output

    @pytest.mark.requirement("RS-CLI-002")
    def test_missing_equals(self, cli_runner: CliRunner) -> None:
        """Test a --set item without '=' is rejected."""
        result = cli_runner.invoke(cli, ["template", "--set", "readyset.deployment"])

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "expected key=value" in result.output

    @pytest.mark.requirement("RS-CLI-002")
    def test_invalid_namespace(self, cli_runner: CliRunner) -> None:
        """Test a namespace that is not a DNS label exits with the validation code."""
        result = cli_runner.invoke(
            cli,
            ["template", "-n", "Prod_NS", "--set", "readyset.deployment=prod"],
        )

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "release.namespace: 'Prod_NS' is not a DNS label" in result.output
        assert "kind:" not in result.output

    @pytest.mark.requirement("RS-CLI-001")
    def test_numeric_namespace(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test a numeric namespace is written as a string."""
        out = tmp_path / "manifests.yaml"

        result = cli_runner.invoke(
            cli,
            ["template", "-n", "2024", "--set", "readyset.deployment=prod", "-o", str(out)],
        )

        assert result.exit_code == 0
        docs = _documents(out.read_text())
        assert {doc["metadata"]["namespace"] for doc in docs} == {"2024"}

    @pytest.mark.requirement("RS-CLI-002")
    def test_unknown_template(self, cli_runner: CliRunner) -> None:
        """Test --show-only with an unknown template exits with code 3."""
        result = cli_runner.invoke(
            cli,
            ["template", "--set", "readyset.deployment=prod", "-s", "ingress.yaml"],
        )

        assert result.exit_code == ExitCode.FILE_NOT_FOUND
        assert "Template not found: ingress.yaml" in result.output

    @pytest.mark.requirement("RS-CLI-002")
    def test_missing_values_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test a missing values file is a usage error."""
        result = cli_runner.invoke(cli, ["template", "-f", str(tmp_path / "missing.yaml")])

        assert result.exit_code == ExitCode.USAGE_ERROR

    @pytest.mark.requirement("RS-CLI-002")
    def test_json_logs_on_failure(self, cli_runner: CliRunner) -> None:
        """Test --log-format json still fails with the validation code."""
        result = cli_runner.invoke(
            cli,
            [
                "--log-format",
                "json",
                "template",
                "--set",
                "consul.enabled=false",
                "--set",
                "readyset.deployment=prod",
            ],
        )

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "is required when consul.enabled is false" in result.output


class TestValuesCommands:
    """Tests for readyset-helm values and validate."""

    @pytest.mark.requirement("RS-CLI-003")
    def test_values_prints_merged_values(self, cli_runner: CliRunner) -> None:
        """Test merged values are printed with camelCase keys."""
        result = cli_runner.invoke(
            cli,
            ["values", "--set", "readyset.deployment=prod", "--set", "consul.server.replicas=5"],
        )

        assert result.exit_code == 0, result.output
        values = yaml.safe_load(result.output)
        assert values["readyset"]["deployment"] == "prod"
        assert values["readyset"]["queryCachingMode"] == "explicit"
        assert values["consul"]["server"]["replicas"] == 5

    @pytest.mark.requirement("RS-CLI-003")
    def test_validate_ok(self, cli_runner: CliRunner) -> None:
        """Test valid overrides print a confirmation."""
        result = cli_runner.invoke(cli, ["validate", "--set", "readyset.deployment=prod"])

        assert result.exit_code == 0
        assert "Values are valid for deployment prod" in result.output

    @pytest.mark.requirement("RS-CLI-003")
    def test_validate_lists_every_issue(self, cli_runner: CliRunner) -> None:
        """Test each offending path is reported."""
        result = cli_runner.invoke(
            cli,
            [
                "validate",
                "--set",
                "readyset.deployment=prod",
                "--set",
                "readyset.queryCachingMode=eager",
                "--set",
                "readyset.adapter.type=oracle",
            ],
        )

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "2 invalid value(s)" in result.output
        assert "readyset.queryCachingMode" in result.output
        assert "readyset.adapter.type" in result.output


class TestSchemaCommand:
    """Tests for readyset-helm schema."""

    @pytest.mark.requirement("RS-CLI-003")
    def test_schema_to_stdout(self, cli_runner: CliRunner) -> None:
        """Test the schema is printed as JSON."""
        result = cli_runner.invoke(cli, ["schema"])

        assert result.exit_code == 0
        schema = json.loads(result.output)
        assert schema["$schema"] == "https://json-schema.org/draft/2020-12/schema"
        assert "readyset" in schema["properties"]

    @pytest.mark.requirement("RS-CLI-003")
    def test_schema_to_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test -o writes the schema to a file."""
        out = tmp_path / "values.schema.json"

        result = cli_runner.invoke(cli, ["schema", "-o", str(out)])

        assert result.exit_code == 0
        assert json.loads(out.read_text())["title"] == "ReadySet chart values"

    @pytest.mark.requirement("RS-CLI-003")
    def test_check_conforming_values(self, cli_runner: CliRunner) -> None:
        """Test --check accepts defaults with a deployment name."""
        result = cli_runner.invoke(
            cli, ["schema", "--check", "--set", "readyset.deployment=prod"]
        )

        assert result.exit_code == 0
        assert "Values conform to the schema" in result.output

    @pytest.mark.requirement("RS-CLI-003")
    def test_check_reports_violations(self, cli_runner: CliRunner) -> None:
        """Test --check reports structural violations."""
        result = cli_runner.invoke(
            cli,
            [
                "schema",
                "--check",
                "--set",
                "readyset.deployment=prod",
                "--set",
                "consul.server.replicas=0",
            ],
        )

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "consul.server.replicas" in result.output


class TestErrorHelpers:
    """Tests for the stderr error helpers."""

    @pytest.mark.requirement("RS-CLI-002")
    def test_error_exit(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test the message and context go to stderr and the code is used."""
        with pytest.raises(SystemExit) as exc_info:
            error_exit("File not found", exit_code=ExitCode.FILE_NOT_FOUND, path="x.yaml")

        assert exc_info.value.code == ExitCode.FILE_NOT_FOUND
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == "Error: File not found (path=x.yaml)\n"

    @pytest.mark.requirement("RS-CLI-002")
    def test_chart_error_exit_lists_paths(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test validation errors print one path per line with exit code 5."""
        exc = ValuesValidationError([("a.b", "bad"), ("c", "missing")])

        with pytest.raises(SystemExit) as exc_info:
            chart_error_exit(exc)

        assert exc_info.value.code == ExitCode.VALIDATION_ERROR
        assert capsys.readouterr().err == "Error: 2 invalid value(s)\n  a.b: bad\n  c: missing\n"

    @pytest.mark.requirement("RS-CLI-002")
    def test_chart_error_exit_uses_error_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test other chart errors exit with their own code."""
        with pytest.raises(SystemExit) as exc_info:
            chart_error_exit(TemplateNotFoundError("x.yaml", ["templates/a.yaml"]))

        assert exc_info.value.code == ExitCode.FILE_NOT_FOUND
        assert "Template not found: x.yaml" in capsys.readouterr().err
