"""
Histogram Model
===============

The typed one-dimensional histogram reconstructed by the object decoder.

Layout:
    edges    - n+1 strictly increasing bin boundaries
    contents - n+2 cells: [underflow, bin_1 .. bin_n, overflow]

Statistics are computed on access from the in-range bins only
(underflow and overflow cells are excluded), weighting each bin
center by its content:

    mean    = Σ wᵢ·xᵢ / Σ wᵢ
    std_dev = sqrt(Σ wᵢ·(xᵢ - mean)² / Σ wᵢ)

An empty histogram (Σ wᵢ = 0) has mean and std_dev 0.0.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np


def _readonly(values: Sequence[float]) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, slots=True, eq=False)
class Histogram:
    """
    Immutable one-dimensional histogram.

    Attributes:
        name: Object name
        edges: Bin boundaries (n+1 values, read-only)
        contents: Bin contents incl. underflow/overflow (n+2 values, read-only)
        title: Object title
        entries: Number of fill entries (defaults to the sum of all cells)
        class_name: Encoded class name (e.g. "TH1F")
        class_version: Encoded class version
    """

    name: str
    edges: np.ndarray
    contents: np.ndarray
    title: str = ""
    entries: Optional[float] = None
    class_name: str = "TH1F"
    class_version: int = 0

    def __post_init__(self) -> None:
        """Copy arrays read-only and validate the layout."""
        edges = _readonly(self.edges)
        contents = _readonly(self.contents)

        if edges.ndim != 1 or edges.size < 2:
            raise ValueError("edges must be a 1-D sequence of at least 2 values")
        if not np.all(np.isfinite(edges)):
            raise ValueError("edges must be finite")
        if not np.all(np.diff(edges) > 0):
            raise ValueError("edges must be strictly increasing")
        if contents.ndim != 1 or contents.size != edges.size + 1:
            raise ValueError(
                f"contents must hold nbins+2 = {edges.size + 1} cells, "
                f"got {contents.size}"
            )

        object.__setattr__(self, "edges", edges)
        object.__setattr__(self, "contents", contents)
        if self.entries is None:
            object.__setattr__(self, "entries", float(contents.sum()))
        else:
            object.__setattr__(self, "entries", float(self.entries))

    @classmethod
    def uniform(
        cls,
        name: str,
        nbins: int,
        xmin: float,
        xmax: float,
        contents: Sequence[float],
        **kwargs,
    ) -> "Histogram":
        """
        Build a histogram with equal-width bins over [xmin, xmax].

        Args:
            name: Object name
            nbins: Number of bins (>= 1)
            xmin: Lower edge of the first bin
            xmax: Upper edge of the last bin
            contents: Either nbins in-range values (flows are set to 0)
                or all nbins+2 cells
            **kwargs: Passed through (title, entries, class_name, ...)
        """
        if nbins < 1:
            raise ValueError("nbins must be >= 1")
        if not xmax > xmin:
            raise ValueError("xmax must be greater than xmin")

        cells = list(contents)
        if len(cells) == nbins:
            cells = [0.0] + cells + [0.0]

        edges = np.linspace(xmin, xmax, nbins + 1)
        return cls(name=name, edges=edges, contents=cells, **kwargs)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    def nbins(self) -> int:
        return int(self.edges.size - 1)

    @property
    def centers(self) -> np.ndarray:
        return (self.edges[:-1] + self.edges[1:]) / 2.0

    @property
    def widths(self) -> np.ndarray:
        return np.diff(self.edges)

    @property
    def bin_contents(self) -> np.ndarray:
        """In-range bin contents (no underflow/overflow)."""
        return self.contents[1:-1]

    @property
    def underflow(self) -> float:
        return float(self.contents[0])

    @property
    def overflow(self) -> float:
        return float(self.contents[-1])

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @property
    def integral(self) -> float:
        """Sum of in-range bin contents."""
        return float(self.bin_contents.sum())

    @property
    def mean(self) -> float:
        """Content-weighted mean of the bin centers."""
        total = self.integral
        if total == 0:
            return 0.0
        return float(np.dot(self.bin_contents, self.centers) / total)

    @property
    def std_dev(self) -> float:
        """Content-weighted standard deviation of the bin centers."""
        total = self.integral
        if total == 0:
            return 0.0
        deviation = self.centers - self.mean
        variance = float(np.dot(self.bin_contents, deviation * deviation) / total)
        return float(np.sqrt(max(variance, 0.0)))

    def __repr__(self) -> str:
        return (
            f"Histogram(name={self.name!r}, class={self.class_name}, "
            f"nbins={self.nbins}, entries={self.entries:g}, "
            f"mean={self.mean:.4g})"
        )

    def to_dict(self) -> dict:
        """Export summary as dictionary for logging/serialization."""
        return {
            "name": self.name,
            "title": self.title,
            "class": self.class_name,
            "version": self.class_version,
            "nbins": self.nbins,
            "xmin": float(self.edges[0]),
            "xmax": float(self.edges[-1]),
            "entries": self.entries,
            "integral": self.integral,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "underflow": self.underflow,
            "overflow": self.overflow,
        }
