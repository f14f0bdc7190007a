from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.figure import Figure


def save_figure(path: Path, figure: Figure | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    figure = figure or plt.gcf()
    figure.tight_layout()
    figure.savefig(path)
    plt.close(figure)
    return path
