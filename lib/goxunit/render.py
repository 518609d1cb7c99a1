import io
from typing import IO

from jinja2 import Environment, StrictUndefined

from goxunit.models import Report, Suite

XUNIT_TEMPLATE = """\
<?xml version="1.0" encoding="utf-8"?>
{% if multi %}
<testsuites>
{% endif %}
{% for suite in suites %}
  <testsuite name="{{ suite.name }}" tests="{{ suite.count }}" errors="{{ suite.num_errors }}" \
failures="{{ suite.num_failed }}" skip="{{ suite.num_skipped }}"{% if suite.time %} time="{{ suite.time }}"{% endif %}>
{% for test in suite.tests %}
    <testcase classname="{{ suite.name }}" name="{{ test.name }}" time="{{ test.time }}">
{% if test.skipped %}
      <skipped/>
{% endif %}
{% if test.errored %}
      <error/>
{% endif %}
{% if test.failed %}
      <failure type="go.error" message="error">{{ test.message }}</failure>
{% endif %}
    </testcase>
{% endfor %}
  </testsuite>
{% endfor %}
{% if multi %}
</testsuites>
{% endif %}
"""

_env = Environment(
    undefined=StrictUndefined,
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)
_template = _env.from_string(XUNIT_TEMPLATE)


def render_xml(report: Report) -> str:
    return _template.render(suites=report.suites, multi=report.multi)


def write_xml(suites: list[Suite], out: IO, bamboo: bool = False) -> None:
    """
    Write the xUnit XML report for suites to out.

    Binary streams receive UTF-8 bytes, text streams receive str.
    """
    xml = render_xml(Report.from_suites(suites, bamboo=bamboo))
    if isinstance(out, io.TextIOBase):
        out.write(xml)
    else:
        out.write(xml.encode("utf-8"))
