from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .delivery import Strategy
from .export import ExportResult

console = Console()

# ── Palette ────────────────────────────────────────────────────────────────────
_ACCENT  = "#4d9fff"
_GREEN   = "#3ecf8e"
_AMBER   = "#f0a500"
_RED     = "#f05c5c"
_TEXT    = "#c9d1e0"
_MID     = "#8896af"
_DIM     = "#546075"

_STRATEGY_LABEL = {
    Strategy.NATIVE_SHARE: "shared via share sheet",
    Strategy.DIRECT_DOWNLOAD: "downloaded",
    Strategy.SERVER_FALLBACK: "downloaded (server copy)",
}


def print_export_result(result: ExportResult, *, out: Console | None = None) -> None:
    out = out or console
    body = Text()
    if result.ok:
        body.append("✓  Contact saved\n", style=f"bold {_GREEN}")
        body.append(f"{result.filename}", style=_TEXT)
        body.append(f"  {_STRATEGY_LABEL.get(result.strategy, '')}", style=f"dim {_MID}")
        border = _GREEN
    else:
        body.append("✗  Export failed\n", style=f"bold {_RED}")
        body.append(result.error or "", style=_TEXT)
        border = _RED

    body.append(f"\ntier: {result.tier.value}", style=f"dim {_DIM}")
    for a in result.attempts:
        if a.ok:
            body.append(f"\n  · {a.strategy.value}: ok", style=f"dim {_GREEN}")
        else:
            body.append(f"\n  · {a.strategy.value}: {a.error}", style=f"dim {_AMBER}")
    out.print(Panel(body, border_style=border, padding=(0, 2)))


# ── Inspection ─────────────────────────────────────────────────────────────────

def _values(vc, name: str) -> list[str]:
    out: list[str] = []
    for prop in getattr(vc, "contents", {}).get(name, []):
        value = prop.value
        if isinstance(value, list):
            value = " ".join(str(v) for v in value if v)
        if name == "url":
            kind = prop.params.get("TYPE", [""])[0]
            value = f"{kind}: {value}" if kind else str(value)
        out.append(str(value))
    return out


def summarize_card(vc) -> dict[str, str]:
    """Flatten the fields worth showing from a parsed vobject card."""
    return {
        "fn": ", ".join(_values(vc, "fn")),
        "tel": "\n".join(_values(vc, "tel")),
        "email": "\n".join(_values(vc, "email")),
        "org": "\n".join(_values(vc, "org") + _values(vc, "title")),
        "url": "\n".join(_values(vc, "url")),
        "photo": "yes" if "photo" in getattr(vc, "contents", {}) else "",
    }


def print_inspect_table(pairs: list[tuple[object, str]], *, out: Console | None = None) -> None:
    out = out or console
    table = Table(title=f"{len(pairs)} card(s)", show_lines=True)
    table.add_column("Source", style=f"dim {_MID}", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Phone")
    table.add_column("Email")
    table.add_column("Org / Title")
    table.add_column("URLs", style=_ACCENT)
    table.add_column("Photo", justify="center")
    for vc, label in pairs:
        row = summarize_card(vc)
        table.add_row(label, row["fn"], row["tel"], row["email"], row["org"], row["url"], row["photo"])
    out.print(table)
