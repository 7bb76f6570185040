"""Tests for the core data models."""

from datetime import date

import pytest
from pydantic import ValidationError

from ecadflow.core.models import (
    EUROPE_BOUNDS,
    UK_BOUNDS,
    ConsolidatedRecord,
    DataQuality,
    EcadFlag,
    GeoBounds,
    Metric,
    MetricFamily,
    MetricValue,
    QualityVerdict,
    StationInfo,
)


def _record(**metrics: MetricValue) -> ConsolidatedRecord:
    return ConsolidatedRecord(
        station_id=257,
        date=date(1957, 1, 1),
        station_name="ARMAGH",
        latitude=54.35,
        longitude=-6.65,
        **metrics,
    )


class TestMetric:
    def test_prefix_lookup_round_trips(self):
        for metric in Metric:
            assert Metric.from_prefix(metric.prefix) is metric
        assert Metric.from_prefix("tx") is Metric.TEMP_MAX
        assert Metric.from_prefix("SD") is None

    def test_families_and_units(self):
        assert Metric.TEMP_AVG.family is MetricFamily.TEMPERATURE
        assert Metric.PRECIPITATION.units == "mm"
        assert Metric.WIND_SPEED.units == "m/s"
        assert all(metric.scale == 10.0 for metric in Metric)

    def test_temperatures_ordered_min_avg_max(self):
        assert Metric.temperatures() == (Metric.TEMP_MIN, Metric.TEMP_AVG, Metric.TEMP_MAX)


class TestEcadFlag:
    def test_from_code(self):
        assert EcadFlag.from_code(0) is EcadFlag.VALID
        assert EcadFlag.from_code(9) is EcadFlag.MISSING
        with pytest.raises(ValueError):
            EcadFlag.from_code(2)

    def test_rank_orders_valid_suspect_missing(self):
        assert EcadFlag.VALID.rank < EcadFlag.SUSPECT.rank < EcadFlag.MISSING.rank


@pytest.mark.parametrize(
    ("flag", "verdict", "expected"),
    [
        (EcadFlag.VALID, QualityVerdict.VALID, DataQuality.VALID),
        (EcadFlag.SUSPECT, QualityVerdict.VALID, DataQuality.SUSPECT_ORIGINAL),
        (EcadFlag.VALID, QualityVerdict.SUSPECT, DataQuality.SUSPECT_RANGE),
        (EcadFlag.SUSPECT, QualityVerdict.SUSPECT, DataQuality.SUSPECT_BOTH),
        (EcadFlag.VALID, QualityVerdict.INVALID, DataQuality.INVALID),
        (EcadFlag.MISSING, None, DataQuality.MISSING),
    ],
)
def test_data_quality_combines_flag_and_verdict(flag, verdict, expected):
    assert MetricValue(4.2, flag, verdict).quality is expected


class TestConsolidatedRecord:
    def test_requires_at_least_one_metric(self):
        with pytest.raises(ValueError):
            _record()

    def test_temp_quality_orders_min_avg_max(self):
        record = _record(
            temp_min=MetricValue(1.4, EcadFlag.VALID),
            temp_max=MetricValue(6.2, EcadFlag.SUSPECT),
            temp_avg=MetricValue(3.9, EcadFlag.VALID),
        )

        assert record.temp_quality == "001"
        assert record.has_complete_temperature()
        assert record.temperature_range() == pytest.approx(4.8)

    def test_temp_quality_marks_absent_components(self):
        record = _record(temp_max=MetricValue(6.2, EcadFlag.VALID))

        assert record.temp_quality == "990"
        assert record.temperature_range() is None

    def test_quality_strings_absent_without_metric(self):
        record = _record(precipitation=MetricValue(5.2, EcadFlag.SUSPECT))

        assert record.temp_quality is None
        assert record.precip_quality == "1"
        assert record.wind_quality is None
        assert record.metric_coverage_score() == pytest.approx(1 / 3)

    def test_with_verdicts_only_touches_present_metrics(self):
        record = _record(wind_speed=MetricValue(4.1, EcadFlag.VALID))

        checked = record.with_verdicts({Metric.WIND_SPEED: QualityVerdict.VALID, Metric.TEMP_MAX: QualityVerdict.VALID})

        assert checked.wind_speed.verdict is QualityVerdict.VALID
        assert checked.temp_max is None
        assert record.wind_speed.verdict is None

    def test_to_row_flattens_values_flags_and_verdicts(self):
        record = _record(
            temp_max=MetricValue(6.2, EcadFlag.VALID, QualityVerdict.VALID, source_id=1001),
        )

        row = record.to_row()

        assert row["station_id"] == 257
        assert row["date"] == date(1957, 1, 1)
        assert row["temp_max"] == pytest.approx(6.2)
        assert row["temp_max_flag"] == 0
        assert row["temp_max_verdict"] == "valid"
        assert row["temp_min"] is None
        assert row["temp_min_flag"] is None
        assert row["temp_quality"] == "990"
        assert row["precip_quality"] is None


class TestStationInfo:
    def test_strips_name(self):
        station = StationInfo(station_id=257, name="  ARMAGH  ", latitude=54.35, longitude=-6.65)

        assert station.name == "ARMAGH"

    @pytest.mark.parametrize(
        "fields",
        [
            {"station_id": 0, "name": "X", "latitude": 0, "longitude": 0},
            {"station_id": 1, "name": "", "latitude": 0, "longitude": 0},
            {"station_id": 1, "name": "X", "latitude": 91, "longitude": 0},
            {"station_id": 1, "name": "X", "latitude": 0, "longitude": -181},
        ],
    )
    def test_rejects_invalid_fields(self, fields):
        with pytest.raises(ValidationError):
            StationInfo(**fields)


class TestGeoBounds:
    def test_presets(self):
        assert GeoBounds.from_name("UK") is UK_BOUNDS
        assert UK_BOUNDS.contains(54.35, -6.65)
        assert not UK_BOUNDS.contains(40.0, -6.65)
        assert EUROPE_BOUNDS.contains(82.0, 75.0)

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            GeoBounds.from_name("atlantis")
