"""Jinja2 JUnit XML report generator."""

from __future__ import annotations

import importlib.resources
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from .models import AuditResult


def render_junit_report(audit_result: AuditResult, suite_name: str = "ksbench") -> str:
    """Render *audit_result* as JUnit XML, one testcase per benchmark item."""
    ref = importlib.resources.files("ksbench.templates").joinpath("junit.xml.j2")
    with importlib.resources.as_file(ref) as template_path:
        env = Environment(
            loader=FileSystemLoader(str(template_path.parent)),
            autoescape=True,
        )
        template = env.get_template("junit.xml.j2")
        return template.render(result=audit_result, suite_name=suite_name)


def generate_junit_report(
    audit_result: AuditResult,
    output_path: str,
    suite_name: str = "ksbench",
) -> None:
    """Write the JUnit XML report to *output_path*.

    Parameters
    ----------
    audit_result:
        Complete audit results with findings.
    output_path:
        File path to write the XML report; parent directories are created.
    suite_name:
        Name of the ``<testsuite>`` element, usually the benchmark family.
    """
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_junit_report(audit_result, suite_name) + "\n", encoding="utf-8")
