"""Coloured status lines and plain-text tables for the command-line tools."""
from typing import List, Sequence, Tuple

import click

RULE = "=" * 48


def print_info(message: str) -> None:
    click.echo(f"{click.style('[INFO]', fg='green')} {message}")


def print_warning(message: str) -> None:
    click.echo(f"{click.style('[WARNING]', fg='yellow')} {message}")


def print_error(message: str) -> None:
    click.echo(f"{click.style('[ERROR]', fg='red')} {message}", err=True)


def print_banner(title: str, rows: Sequence[Tuple[str, str]], warning: bool = False) -> None:
    """Print a titled block of aligned ``label: value`` rows between rules."""
    emit = print_warning if warning else print_info
    width = max((len(label) for label, _ in rows), default=0) + 2
    emit(RULE)
    emit(title)
    emit(RULE)
    for label, value in rows:
        emit(f"{(label + ':').ljust(width)}{value}")
    emit(RULE)


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> List[str]:
    """Render rows as aligned text lines, headers first."""
    columns = [list(headers)] + [[str(cell) for cell in row] for row in rows]
    widths = [max(len(line[i]) for line in columns) for i in range(len(headers))]
    border = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    def render(cells):
        return "| " + " | ".join(cell.ljust(w) for cell, w in zip(cells, widths)) + " |"

    lines = [border, render(columns[0]), border]
    lines.extend(render(line) for line in columns[1:])
    lines.append(border)
    return lines


def print_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    if not rows:
        print_info("(none)")
        return
    for line in format_table(headers, rows):
        click.echo(line)
