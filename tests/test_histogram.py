"""
Histogram Model Tests
=====================
"""

import numpy as np
import pytest

from histo_subscriber.models import Histogram


class TestHistogram:
    """Tests for Histogram layout and statistics."""

    def test_mean_of_symmetric_bins(self, sample_histogram):
        assert sample_histogram.mean == pytest.approx(2.0)

    def test_layout(self, sample_histogram):
        assert sample_histogram.nbins == 3
        assert list(sample_histogram.centers) == pytest.approx([1.0, 2.0, 3.0])
        assert list(sample_histogram.widths) == pytest.approx([1.0, 1.0, 1.0])
        assert list(sample_histogram.bin_contents) == [10, 20, 10]
        assert sample_histogram.underflow == 0.0
        assert sample_histogram.overflow == 0.0

    def test_entries_default_to_sum_of_cells(self):
        histogram = Histogram(
            name="h",
            edges=[0.0, 1.0, 2.0],
            contents=[1.0, 2.0, 3.0, 4.0],
        )

        assert histogram.entries == 10.0
        assert histogram.integral == 5.0

    def test_flows_excluded_from_mean(self):
        histogram = Histogram(
            name="h",
            edges=[0.0, 1.0, 2.0],
            contents=[100.0, 1.0, 1.0, 100.0],
        )

        assert histogram.mean == pytest.approx(1.0)

    def test_std_dev(self, sample_histogram):
        # variance = (10*1 + 0 + 10*1) / 40
        assert sample_histogram.std_dev == pytest.approx(np.sqrt(0.5))

    def test_empty_histogram_statistics(self):
        histogram = Histogram.uniform("empty", nbins=4, xmin=0.0, xmax=4.0, contents=[0] * 4)

        assert histogram.mean == 0.0
        assert histogram.std_dev == 0.0

    def test_statistics_stable_across_reads(self, sample_histogram):
        assert sample_histogram.mean == sample_histogram.mean
        assert sample_histogram.std_dev == sample_histogram.std_dev

    def test_arrays_are_read_only(self, sample_histogram):
        with pytest.raises(ValueError):
            sample_histogram.contents[1] = 99.0
        with pytest.raises(ValueError):
            sample_histogram.edges[0] = -1.0

    def test_fields_are_frozen(self, sample_histogram):
        with pytest.raises(AttributeError):
            sample_histogram.name = "other"

    def test_source_arrays_copied(self):
        contents = np.array([0.0, 1.0, 0.0])
        histogram = Histogram(name="h", edges=[0.0, 1.0], contents=contents)

        contents[1] = 50.0

        assert histogram.integral == 1.0

    @pytest.mark.parametrize(
        "edges, contents",
        [
            ([0.0], [0.0, 0.0]),
            ([0.0, 1.0], [0.0, 1.0]),
            ([1.0, 0.0], [0.0, 1.0, 0.0]),
            ([0.0, float("inf")], [0.0, 1.0, 0.0]),
        ],
    )
    def test_invalid_layout_rejected(self, edges, contents):
        with pytest.raises(ValueError):
            Histogram(name="bad", edges=edges, contents=contents)

    def test_uniform_accepts_all_cells(self):
        histogram = Histogram.uniform("h", nbins=2, xmin=0.0, xmax=2.0, contents=[5, 1, 2, 7])

        assert histogram.underflow == 5.0
        assert histogram.overflow == 7.0

    def test_to_dict(self, sample_histogram):
        data = sample_histogram.to_dict()

        assert data["name"] == "hpx"
        assert data["nbins"] == 3
        assert data["mean"] == pytest.approx(2.0)
        assert data["xmin"] == 0.5
        assert data["xmax"] == 3.5
