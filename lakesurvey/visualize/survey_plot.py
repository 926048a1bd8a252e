import colorsys
import os
from dataclasses import dataclass
from datetime import date, datetime

import matplotlib.colors as mcolors
import numpy as np
from matplotlib import colormaps
from matplotlib import pyplot as plt

from lakesurvey.constants.constants import *
from lakesurvey.dataclasses.dataclasses import SamplingRecord

label_map = {
    TEMPERATURE.label: "Temperature (°C)",
    DISSOLVED_OXYGEN.label: "Dissolved Oxygen (mg/L)",
    SPECIFIC_CONDUCTANCE.label: "Specific Conductance (µS/cm)",
    TOTAL_DISSOLVED_SOLIDS.label: "Total Dissolved Solids (mg/L)",
    PH.label: "pH",
    DEPTH.label: "Depth (m)",
}


@dataclass
class Series:
    id: str
    lake: str
    timestamp: datetime | None
    index: int
    record: SamplingRecord


def generate_color_palette(base_colors: list[str], count: int) -> list[str]:
    """
    Extends a base palette to ``count`` colors.

    Parameters
    ----------
    base_colors : list[str]
        Hex colors used first, in order.
    count : int
        Number of colors needed.

    Returns
    -------
    list[str]
        ``count`` hex colors. Extra colors rotate the hue of the base colors by
        25 degrees per round, lower their saturation and alternate their lightness.
    """
    if count <= len(base_colors):
        return list(base_colors[:count])
    colors = list(base_colors)
    hls_base = [colorsys.rgb_to_hls(*mcolors.to_rgb(color)) for color in base_colors]
    for i in range(len(base_colors), count):
        hue, lightness, saturation = hls_base[i % len(base_colors)]
        variation = i // len(base_colors)
        hue = (hue + variation * 25 / 360) % 1.0
        saturation = max(0.3, saturation - variation * 0.1)
        lightness = max(0.3, min(0.8, lightness + (0.1 if variation % 2 == 0 else -0.1)))
        colors.append(mcolors.to_hex(colorsys.hls_to_rgb(hue, lightness, saturation)))
    return colors


def build_series(records: list[SamplingRecord]) -> list[Series]:
    """
    Numbers the records of each lake by date, giving series ids like ``Hague-0``.

    Lakes keep the order in which they first appear in ``records``.
    """
    series = []
    lakes = list(dict.fromkeys(record.lake for record in records))
    for lake in lakes:
        lake_records = sorted(
            (record for record in records if record.lake == lake),
            key=lambda record: (record.timestamp is None, record.timestamp or datetime.min),
        )
        for index, record in enumerate(lake_records):
            series.append(
                Series(
                    id=f"{lake}-{index}",
                    lake=lake,
                    timestamp=record.timestamp,
                    index=index,
                    record=record,
                )
            )
    return series


def assign_colors(series: list[Series]) -> dict[str, str]:
    """
    Gives each series a color from the palette of its lake.

    Lakes without a base palette in ``BASE_COLOR_PALETTES`` start from one
    color of the fallback colormap.
    """
    colors = {}
    fallback = colormaps[FALLBACK_COLORMAP]
    lakes = list(dict.fromkeys(s.lake for s in series))
    for lake_index, lake in enumerate(lakes):
        lake_series = [s for s in series if s.lake == lake]
        base = BASE_COLOR_PALETTES.get(lake) or [
            mcolors.to_hex(fallback(lake_index % fallback.N))
        ]
        palette = generate_color_palette(base, len(lake_series))
        for s, color in zip(lake_series, palette):
            colors[s.id] = color
    return colors


class SeriesTracker:
    """
    Tracks which records are shown on the charts.

    Parameters
    ----------
    records : list[SamplingRecord]
        The merged records.
    max_visible : int, default MAX_VISIBLE_DEFAULT
        Number of series visible at start, taken in series order.
    """

    def __init__(self, records: list[SamplingRecord], max_visible: int = MAX_VISIBLE_DEFAULT):
        self.all_series = build_series(records)
        self.colors = assign_colors(self.all_series)
        self.visible = {s.id for s in self.all_series[:max_visible]}

    def _series_for_date(self, day: date):
        return [
            s for s in self.all_series
            if s.timestamp is not None and s.timestamp.date() == day
        ]

    def toggle_date(self, day: date):
        """Hides every series of ``day`` when all are visible, otherwise shows them all."""
        series_for_date = self._series_for_date(day)
        all_checked = all(s.id in self.visible for s in series_for_date)
        for s in series_for_date:
            if all_checked:
                self.visible.discard(s.id)
            else:
                self.visible.add(s.id)

    def toggle_all(self, show: bool):
        if show:
            self.visible = {s.id for s in self.all_series}
        else:
            self.visible = set()

    def visible_records(self) -> list[SamplingRecord]:
        return [s.record for s in self.all_series if s.id in self.visible]

    def visible_series(self) -> list[Series]:
        return [s for s in self.all_series if s.id in self.visible]


def _series_label(s: Series) -> str:
    if s.timestamp is None:
        return f"{s.record.station} (undated)"
    return f"{s.record.station} {s.timestamp.date().isoformat()}"


def plot_depth_profiles(tracker: SeriesTracker, measurement: str, plot_folder: str) -> list[str]:
    """
    Generates one depth profile chart per lake for the visible series.

    Parameters
    ----------
    tracker : SeriesTracker
        Series and colors to plot.
    measurement : str
        The reading to plot against depth, e.g. ``temperature`` or ``dissolved_oxygen``.
    plot_folder : str
        The path to the folder where plots will be saved.

    Returns
    -------
    list[str]
        Paths of the saved images.
    """
    os.makedirs(plot_folder, exist_ok=True)
    visible = tracker.visible_series()
    paths = []
    for lake in dict.fromkeys(s.lake for s in visible):
        fig, ax = plt.subplots(figsize=(10, 8))
        max_depth = 0.0
        for s in (s for s in visible if s.lake == lake):
            points = [
                (getattr(m, measurement), m.depth)
                for m in s.record.measurements
                if getattr(m, measurement) is not None
            ]
            if not points:
                continue
            x, y = np.array(points).T
            max_depth = max(max_depth, float(y.max()))
            ax.plot(x, y, marker="o", color=tracker.colors[s.id], label=_series_label(s))
        ax.set_ylim([max_depth, 0])
        ax.set_xlabel(label_map[measurement])
        ax.set_ylabel(label_map[DEPTH.label])
        ax.set_title(f"{lake} Lake \n Depth vs. {label_map[measurement]}")
        ax.grid(True)
        if ax.get_legend_handles_labels()[0]:
            ax.legend(loc="upper center", bbox_to_anchor=(0.5, -0.1), ncol=3)
        plot_path = os.path.join(plot_folder, f"{lake}_depth_{measurement}_plot.png")
        fig.savefig(plot_path, bbox_inches="tight")
        plt.close(fig)
        paths.append(plot_path)
    return paths


def plot_scatter(
    tracker: SeriesTracker,
    x_measurement: str,
    y_measurement: str,
    plot_folder: str,
    depth_range: tuple[str, float, float] | None = None,
) -> str | None:
    """
    Generates a scatter plot of two readings over the visible series.

    Parameters
    ----------
    tracker : SeriesTracker
        Series to plot.
    x_measurement : str
        Reading on the x axis.
    y_measurement : str
        Reading on the y axis.
    plot_folder : str
        The path to the folder where plots will be saved.
    depth_range : tuple[str, float, float], optional
        ``(name, min, max)`` depth filter, one of ``DEPTH_RANGES``.

    Returns
    -------
    str | None
        Path of the saved image, or None when fewer than two points remain.

    Notes
    -----
    Points are colored from blue (earliest) to red (latest) and a least squares
    trend line with its R² is drawn.
    """
    points = []
    for s in tracker.visible_series():
        if s.timestamp is None:
            continue
        for m in s.record.measurements:
            if depth_range and not depth_range[1] <= m.depth <= depth_range[2]:
                continue
            x, y = getattr(m, x_measurement), getattr(m, y_measurement)
            if x is not None and y is not None:
                points.append((x, y, s.timestamp.timestamp()))
    if len(points) < 2:
        return None

    os.makedirs(plot_folder, exist_ok=True)
    x, y, t = np.array(points).T
    span = t.max() - t.min()
    ratio = (t - t.min()) / span if span else np.zeros_like(t)
    colors = [colorsys.hls_to_rgb((240 - r * 120) / 360, 0.5, 0.7) for r in ratio]

    fig, ax = plt.subplots(figsize=(10, 8))
    ax.scatter(x, y, c=colors, alpha=0.7)
    if np.ptp(x) > 0:
        slope, intercept = np.polyfit(x, y, 1)
        predicted = slope * x + intercept
        total = ((y - y.mean()) ** 2).sum()
        r_squared = 1 - ((y - predicted) ** 2).sum() / total if total else 1.0
        xs = np.array([x.min(), x.max()])
        ax.plot(xs, slope * xs + intercept, linestyle="--", color="#333", label=f"R² = {r_squared:.3f}")
        ax.legend(loc="upper right")
    title = f"{label_map[x_measurement]} vs. {label_map[y_measurement]}"
    suffix = ""
    if depth_range:
        title += f"\n {depth_range[0]}"
        suffix = f"_{depth_range[1]}-{depth_range[2]}m"
    ax.set_title(title)
    ax.set_xlabel(label_map[x_measurement])
    ax.set_ylabel(label_map[y_measurement])
    ax.grid(True)
    plot_path = os.path.join(plot_folder, f"{x_measurement}_vs_{y_measurement}{suffix}_scatter_plot.png")
    fig.savefig(plot_path, bbox_inches="tight")
    plt.close(fig)
    return plot_path
