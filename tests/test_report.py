"""Tests for the JUnit XML report."""
from __future__ import annotations

import xml.etree.ElementTree as ET

from ksbench.models import AuditResult, Finding, Status
from ksbench.report import generate_junit_report, render_junit_report


def _result() -> AuditResult:
    return AuditResult(
        benchmark="CIS Kubernetes Benchmark",
        benchmark_version="1.3.0",
        findings=[
            Finding("2.2.1", Status.FAIL, "/etc/kubernetes/kubelet.conf has permissions 0666 > 0644",
                    evidence="0666 > 0644", title="kubelet.conf permissions", family="node"),
            Finding("2.2.2", Status.PASS, "owned by root:root", title="kubelet.conf ownership", family="node"),
            Finding("2.2.5", Status.SKIP, "process not found: kube-proxy", title="proxy kubeconfig", family="node"),
            Finding("2.2.9", Status.ERROR, "Prerequisite lookup error: <denied>", title="config ownership",
                    family="node", scored=False),
        ],
    )


class TestJunitReport:

    def test_well_formed_with_counts(self):
        root = ET.fromstring(render_junit_report(_result(), suite_name="node"))
        assert root.tag == "testsuites"
        suite = root.find("testsuite")
        assert suite.get("name") == "node"
        assert suite.get("tests") == "4"
        assert suite.get("failures") == "1"
        assert suite.get("errors") == "1"
        assert suite.get("skipped") == "1"

    def test_one_testcase_per_item(self):
        root = ET.fromstring(render_junit_report(_result()))
        cases = root.findall("./testsuite/testcase")
        assert [c.get("name") for c in cases] == [
            "[2.2.1] kubelet.conf permissions [Scored]",
            "[2.2.2] kubelet.conf ownership [Scored]",
            "[2.2.5] proxy kubeconfig [Scored]",
            "[2.2.9] config ownership [Not Scored]",
        ]

    def test_outcome_elements(self):
        cases = ET.fromstring(render_junit_report(_result())).findall("./testsuite/testcase")
        failure = cases[0].find("failure")
        assert failure is not None
        assert failure.text == "0666 > 0644"
        assert cases[1].find("failure") is None
        assert cases[2].find("skipped").get("message") == "process not found: kube-proxy"
        assert cases[3].find("error").get("message") == "Prerequisite lookup error: <denied>"

    def test_written_to_disk(self, tmp_path):
        out = tmp_path / "reports" / "node.xml"
        generate_junit_report(_result(), str(out))
        assert out.exists()
        ET.parse(out)
