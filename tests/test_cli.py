"""Tests for the command line."""
from __future__ import annotations

import os

import pytest
from click.testing import CliRunner

from ksbench import __version__
from ksbench.cli import cli


@pytest.fixture
def node(tmp_path, fake_proc, owner_of, write_baseline):
    """A fake node: kubelet running with a kubeconfig, no kube-proxy."""
    kubeconfig = tmp_path / "kubelet.conf"
    kubeconfig.write_text("")
    os.chmod(kubeconfig, 0o600)
    user, group = owner_of(kubeconfig)
    fake_proc(812, "kubelet", ["/usr/bin/kubelet", f"--kubeconfig={kubeconfig}"])

    def _item(check_id, process, function, params):
        return {
            "id": check_id,
            "title": f"{process} {function}",
            "family": "node",
            "target": {"process": process, "flag": "kubeconfig"},
            "check_function": f"files.{function}",
            "params": params,
        }

    baseline = write_baseline([
        _item("2.2.1", "kubelet", "check_permissions", {"mode": "0644"}),
        _item("2.2.2", "kubelet", "check_ownership", {"user": user, "group": group}),
        _item("2.2.5", "kube-proxy", "check_permissions", {"mode": "0644"}),
    ])
    return {"baseline": baseline, "proc": str(fake_proc.root), "kubeconfig": kubeconfig}


def _invoke(node, *args):
    return CliRunner().invoke(cli, ["--baseline", node["baseline"], "--proc-root", node["proc"], *args])


class TestCli:

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_list_checks_builtin(self):
        result = CliRunner().invoke(cli, ["list-checks"])
        assert result.exit_code == 0
        assert "2.2.1" in result.output
        assert "2.2.10" in result.output
        assert "Total: 10 checks" in result.output
        assert "Worker Node Security Configuration (node)" in result.output

    def test_node_passes_with_proxy_skipped(self, node):
        result = _invoke(node, "cis", "node")
        assert result.exit_code == 0, result.output
        assert "2.2.5" in result.output

    def test_missing_process_fail_policy(self, node):
        result = _invoke(node, "cis", "--missing-process", "fail", "node")
        assert result.exit_code == 1

    def test_kubelet_subcommand_ignores_proxy(self, node):
        result = _invoke(node, "cis", "--missing-process", "fail", "node", "kubelet")
        assert result.exit_code == 0, result.output
        assert "2.2.5" not in result.output

    def test_failure_exit_code(self, node):
        os.chmod(node["kubeconfig"], 0o666)
        result = _invoke(node, "cis", "node", "kubelet")
        assert result.exit_code == 1

    def test_focus_and_junit_report(self, node, tmp_path):
        report = tmp_path / "out" / "junit.xml"
        result = _invoke(node, "cis", "--focus", r"\[2\.2\.2\]", "--junit-report", str(report), "node")
        assert result.exit_code == 0, result.output
        xml = report.read_text()
        assert "[2.2.2]" in xml
        assert "[2.2.1]" not in xml

    def test_invalid_focus(self, node):
        result = _invoke(node, "cis", "--focus", "[unclosed", "node")
        assert result.exit_code == 2

    def test_nothing_selected(self, node):
        result = _invoke(node, "cis", "--focus", "no-such-item", "node")
        assert result.exit_code == 0
        assert "No checks matched" in result.output
