"""Tests for the energy and cost model."""
from datetime import datetime, time

import pytest

from custom_components.overnight_ev_charger.domain.energy import (
    BatteryProfile,
    TariffWindow,
    capacity_from_cac,
    charger_type,
    duration_hours,
    energy_needed_kwh,
    resolve_battery_profile,
    split_cost,
)
from custom_components.overnight_ev_charger.exceptions import ConfigurationError

TARIFF = TariffWindow(
    cheap_start=time(23, 30),
    cheap_end=time(5, 30),
    cheap_rate_per_kwh=0.09,
    standard_rate_per_kwh=0.28,
)


def test_usable_capacity_applies_soh():
    """Test SOH scales the nominal capacity."""
    assert BatteryProfile(40.0, 100.0).usable_capacity_kwh == 40.0
    assert BatteryProfile(40.0, 90.0).usable_capacity_kwh == pytest.approx(36.0)


def test_energy_needed():
    """Test the SOC delta to kWh conversion."""
    assert energy_needed_kwh(65, 80, 40.0) == pytest.approx(6.0)
    assert energy_needed_kwh(50, 80, 36.0) == pytest.approx(10.8)
    # Already above target
    assert energy_needed_kwh(85, 80, 40.0) == 0.0


def test_energy_needed_is_monotone():
    """More target needs more energy, more charge in the battery needs less."""
    socs = range(0, 101, 5)
    for current in socs:
        needs = [energy_needed_kwh(current, target, 40.0) for target in socs]
        assert needs == sorted(needs)
    for target in socs:
        needs = [energy_needed_kwh(current, target, 40.0) for current in socs]
        assert needs == sorted(needs, reverse=True)
        assert min(needs) >= 0


def test_duration_hours():
    """Test charging time and the positive rate requirement."""
    assert duration_hours(12.0, 1.8) == pytest.approx(6.6667, abs=1e-4)
    with pytest.raises(ConfigurationError):
        duration_hours(12.0, 0)
    with pytest.raises(ConfigurationError):
        duration_hours(12.0, -7)


def test_tariff_label_and_duration():
    """Test tariff window helpers."""
    assert TARIFF.label() == "23:30-05:30"
    assert TARIFF.duration_minutes == 360
    assert not TARIFF.is_zero_length


def test_split_cost_inside_window():
    """A session fully inside the window costs the cheap rate only."""
    split = split_cost(
        datetime(2026, 1, 15, 23, 30),
        datetime(2026, 1, 16, 1, 30),
        2.0,
        TARIFF,
    )
    assert split.cheap_hours == pytest.approx(2.0)
    assert split.overflow_hours == 0
    assert split.cost == pytest.approx(2.0 * 2.0 * 0.09)


def test_split_cost_before_and_after_window():
    """Overflow on both sides is billed at the standard rate."""
    split = split_cost(
        datetime(2026, 1, 15, 22, 30),
        datetime(2026, 1, 16, 6, 30),
        1.0,
        TARIFF,
    )
    assert split.pre_window_hours == pytest.approx(1.0)
    assert split.cheap_hours == pytest.approx(6.0)
    assert split.post_window_hours == pytest.approx(1.0)
    assert split.cost == pytest.approx(2.0 * 0.28 + 6.0 * 0.09)


def test_split_cost_starting_mid_window():
    """Starting inside the window uses the instance that is open."""
    split = split_cost(
        datetime(2026, 1, 16, 4, 30),
        datetime(2026, 1, 16, 6, 0),
        1.0,
        TARIFF,
    )
    assert split.pre_window_hours == 0
    assert split.cheap_hours == pytest.approx(1.0)
    assert split.post_window_hours == pytest.approx(0.5)


def test_split_cost_zero_length_window():
    """A zero-length window is never cheap."""
    tariff = TariffWindow(time(1, 0), time(1, 0), 0.09, 0.28)
    split = split_cost(
        datetime(2026, 1, 16, 0, 0),
        datetime(2026, 1, 16, 2, 0),
        1.0,
        tariff,
    )
    assert split.cheap_hours == 0
    assert split.overflow_hours == pytest.approx(2.0)
    assert split.cost == pytest.approx(2.0 * 0.28)


def test_split_cost_empty_interval():
    """An empty interval costs nothing."""
    moment = datetime(2026, 1, 16, 0, 0)
    split = split_cost(moment, moment, 7.0, TARIFF)
    assert split.cost == 0
    assert split.cheap_hours == 0


def test_capacity_from_cac():
    """Test amp-hour capacity conversion with and without a voltage."""
    assert capacity_from_cac(111.0, 360.0) == pytest.approx(39.96)
    assert capacity_from_cac(100.0, None) == pytest.approx(36.0)


def test_resolve_battery_profile_prefers_telemetry():
    """Plausible telemetry wins over configuration."""
    profile = resolve_battery_profile(
        telemetry_capacity_kwh=62.0,
        telemetry_soh_pct=92.0,
        configured_capacity_kwh=40.0,
        configured_soh_pct=100.0,
    )
    assert profile.source == "telemetry"
    assert profile.nominal_capacity_kwh == 62.0
    assert profile.state_of_health_pct == 92.0


def test_resolve_battery_profile_rejects_implausible_values():
    """Implausible telemetry falls back to configuration, then defaults."""
    profile = resolve_battery_profile(
        telemetry_capacity_kwh=5000.0,
        telemetry_soh_pct=12.0,
        configured_capacity_kwh=52.0,
        configured_soh_pct=95.0,
    )
    assert profile.source == "configured"
    assert profile.nominal_capacity_kwh == 52.0
    assert profile.state_of_health_pct == 95.0

    profile = resolve_battery_profile()
    assert profile.source == "default"
    assert profile.usable_capacity_kwh == 40.0


@pytest.mark.parametrize(
    ("rate", "expected"),
    [(1.8, "granny"), (3.6, "type2_slow"), (7.0, "type2_fast"), (50.0, "rapid")],
)
def test_charger_type(rate, expected):
    """Test charge rate classification."""
    assert charger_type(rate) == expected
