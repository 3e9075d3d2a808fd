"""
A terminal renderer for published panel states.

Stands in for the chart/table front end: it consumes already-parsed shapes
and never validates them again.
"""

from __future__ import annotations

import json
import math
import sys
from typing import Mapping, Optional

import pystache

from rhost.rhost_datatypes import Failed, Published, Succeeded
from rhost.rhost_shapes import DataTable, PlaygroundOutput

SUCCESS_TEMPLATE = """\
== {{title}} ({{elapsed}} ms)
{{#console}}{{console}}
{{/console}}{{#fields}}  {{label}}: {{value}}
{{/fields}}{{#rows}}  {{index}}. {{cells}}
{{/rows}}{{#json}}{{json}}
{{/json}}"""

FAILURE_TEMPLATE = """\
== {{title}} failed [{{kind}}]
{{message}}
"""


def format_value(v) -> str:
    if isinstance(v, bool):
        return "TRUE" if v else "FALSE"
    if v is None:
        return "NA"
    if isinstance(v, float):
        return "NA" if not math.isfinite(v) else f"{v:.4f}"
    return str(v)


class TextRenderer:
    def __init__(self, stream=None, titles: Optional[Mapping[str, str]] = None):
        self.stream = stream if stream is not None else sys.stdout
        self.titles = dict(titles or {})
        self._renderer = pystache.Renderer(escape=lambda u: u)

    def context(self, published: Published) -> dict:
        title = self.titles.get(published.panel_id, published.panel_id)
        match published:
            case Failed():
                return {"title": title, "kind": published.kind, "message": published.message}
            case Succeeded(parsed=parsed):
                ctx = {
                    "title": title,
                    "elapsed": f"{published.elapsed_ms:.1f}",
                    "console": published.console_text.rstrip("\n"),
                    "fields": [{"label": k, "value": format_value(v)} for k, v in parsed.summary()],
                }
                if isinstance(parsed, DataTable):
                    ctx["rows"] = [
                        {"index": i + 1, "cells": "  ".join(format_value(c) for c in row)}
                        for i, row in enumerate(parsed.rows)
                    ]
                if isinstance(parsed, PlaygroundOutput) and parsed.value is not None:
                    ctx["json"] = json.dumps(parsed.value, indent=2)
                return ctx

    def render(self, published: Published) -> str:
        template = FAILURE_TEMPLATE if isinstance(published, Failed) else SUCCESS_TEMPLATE
        return self._renderer.render(template, self.context(published))

    def __call__(self, published: Published) -> None:
        self.stream.write(self.render(published))
        self.stream.flush()
