"""Conversion of generated notebooks into nbformat 4 documents."""

from __future__ import annotations

import re
from typing import Any, Dict, List

from .schemas import Notebook

NBFORMAT = 4
NBFORMAT_MINOR = 5


def _split_source(source: str) -> List[str]:
    lines = source.splitlines(keepends=True)
    return lines or [""]


def to_ipynb(notebook: Notebook) -> Dict[str, Any]:
    """Return a JSON-serialisable ``.ipynb`` document for ``notebook``."""

    cells: List[Dict[str, Any]] = []
    for cell in notebook.cells:
        payload: Dict[str, Any] = {
            "cell_type": cell.cell_type,
            "metadata": {},
            "source": _split_source(cell.source),
        }
        if cell.cell_type == "code":
            payload["execution_count"] = None
            payload["outputs"] = []
        cells.append(payload)

    return {
        "nbformat": NBFORMAT,
        "nbformat_minor": NBFORMAT_MINOR,
        "metadata": {
            "colab": {"name": notebook.colab_title, "provenance": []},
            "kernelspec": {"name": "python3", "display_name": "Python 3", "language": "python"},
            "language_info": {"name": "python"},
            "accelerator": "GPU",
        },
        "cells": cells,
    }


def notebook_filename(title: str) -> str:
    """Derive a filesystem and URL safe ``.ipynb`` filename from a title."""

    slug = re.sub(r"[^A-Za-z0-9]+", "_", title).strip("_")[:80]
    return f"{slug or 'paper_implementation'}.ipynb"
