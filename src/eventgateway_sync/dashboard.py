"""Box-drawn tables of what a service has registered on the gateway."""

from __future__ import annotations

from typing import Any


def render_table(headers: list[str], rows: list[list[str]]) -> str:
    """
    Lay out ``rows`` under ``headers`` between ``+---+`` rules.

    Example:
        +-----------------+-----------+
        | Function Id     | Type      |
        +-----------------+-----------+
        | svc-dev-hello   | awslambda |
        | svc-dev-toQueue | awssqs    |
        +-----------------+-----------+
    """
    if not headers:
        return ""

    widths = [
        max([len(header), *(len(row[i]) for row in rows)])
        for i, header in enumerate(headers)
    ]
    rule = "+" + "+".join("-" * (width + 2) for width in widths) + "+"

    def line(cells: list[str]) -> str:
        padded = (cell.ljust(width) for cell, width in zip(cells, widths, strict=True))
        return "| " + " | ".join(padded) + " |"

    return "\n".join([rule, line(headers), rule, *(line(row) for row in rows), rule])


def _provider_target(function: dict[str, Any]) -> str:
    provider = function.get("provider") or {}
    for key in ("arn", "streamName", "deliveryStreamName", "queueUrl", "url"):
        if provider.get(key):
            return str(provider[key])
    return ""


def format_functions(functions: list[dict[str, Any]]) -> str:
    rows = [
        [str(f.get("functionId", "")), str(f.get("type", "")), _provider_target(f)]
        for f in sorted(functions, key=lambda f: str(f.get("functionId", "")))
    ]
    return render_table(["Function Id", "Type", "Target"], rows)


def format_subscriptions(subscriptions: list[dict[str, Any]]) -> str:
    rows = [
        [
            str(s.get("eventType") or s.get("event", "")),
            str(s.get("type", "")),
            str(s.get("functionId", "")),
            str(s.get("method", "")),
            str(s.get("path", "")),
        ]
        for s in sorted(
            subscriptions, key=lambda s: (str(s.get("path", "")), str(s.get("method", "")))
        )
    ]
    return render_table(["Event Type", "Type", "Function Id", "Method", "Path"], rows)


def format_cors(rules: list[dict[str, Any]]) -> str:
    rows = [
        [
            str(r.get("method", "")),
            str(r.get("path", "")),
            ", ".join(r.get("allowedOrigins") or []),
            ", ".join(r.get("allowedHeaders") or []),
            "yes" if r.get("allowCredentials") else "no",
        ]
        for r in sorted(rules, key=lambda r: (str(r.get("path", "")), str(r.get("method", ""))))
    ]
    return render_table(
        ["Method", "Path", "Allowed Origins", "Allowed Headers", "Credentials"], rows
    )
