"""Tests for the reference collaborator models."""

from datetime import date, datetime

import pytest

from bepsim.core.components.control.config import (
    OnOffTimeControlConfig,
    SetpointTimeControlConfig,
    ThermostatControlConfig,
)
from bepsim.core.components.control.model import (
    OnOffTimeControl,
    SetpointTimeControl,
    ThermostatControl,
    ThermostatState,
)
from bepsim.core.components.energy_supply.config import EnergySupplyConfig
from bepsim.core.components.energy_supply.model import EnergySupplyMeter, MeterState
from bepsim.core.components.generator.config import PhotovoltaicConfig
from bepsim.core.components.generator.model import PhotovoltaicModel
from bepsim.core.components.handles import ComponentHandle, ComponentKind
from bepsim.core.components.heat_source.config import EmitterConfig, HeatPumpConfig
from bepsim.core.components.heat_source.model import BoilerModel, HeatPumpModel, HeatRequest
from bepsim.core.components.hot_water.config import StorageCylinderConfig
from bepsim.core.components.hot_water.model import CylinderState, StorageCylinderModel
from bepsim.core.components.outputs import ControlOutput, EndUse, Fuel, FuelFlow
from bepsim.core.components.zone.model import RCZoneModel, ZoneState
from bepsim.core.schedule import DailyScheduleConfig, OnOffScheduleConfig
from bepsim.core.timestep_data import ConditionSnapshot, Timestep
from conftest import boiler, zone

HEATING_ON = {"setpoint_control": ControlOutput(on=True, setpoint=20.0)}
HEATING_OFF = {"setpoint_control": ControlOutput(on=False, setpoint=None)}


def snapshot(hour=0, outdoor=0.0, solar=0.0, cold=10.0, features=None):
    return ConditionSnapshot(
        timestep=Timestep(index=0, start=datetime(2023, 1, 2, hour), duration_s=3600.0),
        outdoor_temperature=outdoor,
        solar_irradiance=solar,
        cold_water_temperature=cold,
        features=features or {},
    )


# ------------------------
# Controls
# ------------------------
def test_on_off_time_control_follows_schedule():
    control = OnOffTimeControl(
        OnOffTimeControlConfig(schedule=OnOffScheduleConfig(weekday=[False, True]))
    )
    assert control.compute(None, snapshot(hour=6), {}, {})[0].on is False
    assert control.compute(None, snapshot(hour=18), {}, {})[0].on is True


def make_setpoint_control(**kwargs):
    profile = [None] * 7 + [21.0] * 16 + [None]
    return SetpointTimeControl(
        SetpointTimeControlConfig(schedule=DailyScheduleConfig(weekday=profile), **kwargs)
    )


def test_setpoint_control_clamps_to_limits():
    control = make_setpoint_control(setpoint_min=16.0, setpoint_max=20.0)
    output, _ = control.compute(None, snapshot(hour=8), {}, {})
    assert output == ControlOutput(on=True, setpoint=20.0)


def test_setpoint_control_off_outside_schedule():
    control = make_setpoint_control()
    output, _ = control.compute(None, snapshot(hour=3), {}, {})
    assert output == ControlOutput(on=False, setpoint=None)


def test_setpoint_control_default_to_max():
    control = make_setpoint_control(setpoint_max=19.0, default_to_max=True)
    output, _ = control.compute(None, snapshot(hour=3), {}, {})
    assert output == ControlOutput(on=True, setpoint=19.0)


def test_setpoint_control_advanced_start_brings_setpoint_forward():
    control = make_setpoint_control(advanced_start=2.0)
    assert control.compute(None, snapshot(hour=5), {}, {})[0].setpoint == 21.0
    assert control.compute(None, snapshot(hour=4), {}, {})[0].setpoint is None


def test_setpoint_control_advanced_start_uses_holiday_of_the_next_day():
    # Arrange: Monday 23:00, Tuesday is a holiday
    weekday = [21.0] + [None] * 23
    weekend = [17.0] + [None] * 23
    control = SetpointTimeControl(
        SetpointTimeControlConfig(
            schedule=DailyScheduleConfig(weekday=weekday, weekend=weekend),
            advanced_start=1.0,
        )
    )
    timestep = Timestep(
        index=0,
        start=datetime(2023, 1, 2, 23),
        duration_s=3600.0,
        holidays=frozenset({date(2023, 1, 3)}),
    )
    conditions = ConditionSnapshot(timestep=timestep, outdoor_temperature=0.0)

    # Act
    output, _ = control.compute(None, conditions, {}, {})

    # Assert
    assert not timestep.is_holiday
    assert output.setpoint == 17.0


def test_setpoint_control_config_validation():
    config = SetpointTimeControlConfig(
        schedule=DailyScheduleConfig(weekday=[20.0]),
        setpoint_min=22.0,
        setpoint_max=20.0,
        advanced_start=30.0,
    )
    assert len(config.validate()) == 2


@pytest.mark.parametrize(
    "was_on, temperature, expected",
    [(True, 20.4, True), (True, 20.5, False), (False, 19.6, False), (False, 19.5, True)],
)
def test_thermostat_hysteresis(was_on, temperature, expected):
    # Arrange
    stat = ThermostatControl(
        ThermostatControlConfig(setpoint_control="heating", zone="room", hysteresis_k=1.0)
    )

    # Act
    output, state = stat.compute(
        ThermostatState(on=was_on), snapshot(), HEATING_ON, {"zone": temperature}
    )

    # Assert
    assert output.on is expected
    assert state == ThermostatState(on=expected)


def test_thermostat_off_when_no_setpoint():
    stat = ThermostatControl(ThermostatControlConfig(setpoint_control="heating", zone="room"))
    output, _ = stat.compute(ThermostatState(on=True), snapshot(), HEATING_OFF, {"zone": 10.0})
    assert output.on is False


# ------------------------
# Zone
# ------------------------
def test_zone_demand_reaches_setpoint():
    # Arrange
    model = RCZoneModel(zone())
    state = ZoneState(temperature=18.0)

    # Act
    demand = model.demand(state, snapshot(), HEATING_ON)
    result, new_state = model.compute(state, snapshot(), HEATING_ON, demand.demand_j)

    # Assert
    assert demand.demand_j == pytest.approx(1e7 * 2.0 + 200.0 * 20.0 * 3600.0)
    assert demand.target_temperature == 20.0
    assert new_state.temperature == pytest.approx(20.0)
    assert result.balance.residual_j == pytest.approx(0.0, abs=1e-6)


def test_zone_free_floats_without_heat():
    # Arrange
    model = RCZoneModel(zone())
    state = ZoneState(temperature=18.0)

    # Act
    demand = model.demand(state, snapshot(), HEATING_OFF)
    result, new_state = model.compute(state, snapshot(), HEATING_OFF, 0.0)

    # Assert
    assert demand.demand_j == 0.0
    assert demand.setpoint is None
    assert new_state.temperature == pytest.approx(50000.0 / (1e7 / 3600.0 + 200.0))
    assert demand.target_temperature == pytest.approx(new_state.temperature)
    assert result.balance.residual_j == pytest.approx(0.0, abs=1e-6)


def test_zone_demand_is_zero_when_thermostat_off():
    model = RCZoneModel(zone())
    controls = dict(HEATING_ON, thermostat=ControlOutput(on=False, setpoint=20.0))
    assert model.demand(ZoneState(temperature=18.0), snapshot(), controls).demand_j == 0.0


def test_zone_gains_reduce_demand():
    model = RCZoneModel(zone(internal_gains_w_per_m2=5.0, solar_aperture_m2=2.0))
    without = RCZoneModel(zone()).demand(ZoneState(20.0), snapshot(solar=100.0), HEATING_ON)
    with_gains = model.demand(ZoneState(20.0), snapshot(solar=100.0), HEATING_ON)
    assert without.demand_j - with_gains.demand_j == pytest.approx((500.0 + 200.0) * 3600.0)


# ------------------------
# Heat sources
# ------------------------
def test_boiler_splits_capacity_in_proportion_to_demand():
    # Arrange
    model = BoilerModel(boiler(capacity_kw=10.0, efficiency=0.9))
    request = HeatRequest(demands_j=(30e6, 18e6), zone_temperatures=(20.0, 20.0))

    # Act
    result, _ = model.compute(None, snapshot(), {}, request)

    # Assert
    assert result.delivered_j == pytest.approx((22.5e6, 13.5e6))
    assert result.fuel_j == pytest.approx(40e6)
    assert result.balance.residual_j == pytest.approx(0.0)


def test_heat_source_delivers_nothing_when_control_off():
    model = BoilerModel(boiler(control="timer"))
    request = HeatRequest(demands_j=(1e6,), zone_temperatures=(20.0,))
    result, _ = model.compute(None, snapshot(), {"control": ControlOutput(on=False)}, request)
    assert result.delivered_j == (0.0,)
    assert result.fuel_j == 0.0


def test_heat_pump_cop_depends_on_outdoor_temperature():
    # Arrange
    model = HeatPumpModel(
        HeatPumpConfig(capacity_kw=10.0, energy_supply="grid", cop_nominal=3.0, cop_slope_per_k=0.08)
    )
    request = HeatRequest(demands_j=(22e6,), zone_temperatures=(20.0,))

    # Act
    result, _ = model.compute(None, snapshot(outdoor=-3.0), {}, request)

    # Assert
    assert model.cop(7.0) == 3.0
    assert model.cop(-50.0) == 1.0
    assert result.fuel_j == pytest.approx(10e6)
    assert result.balance.residual_j == pytest.approx(0.0)


def test_emitter_limits_output_by_zone_temperature():
    # Arrange
    emitter = EmitterConfig(coefficient_w=100.0, exponent=1.0, flow_temperature=50.0)
    model = BoilerModel(boiler(emitter=emitter))

    # Act
    cool, _ = model.compute(None, snapshot(), {}, HeatRequest(demands_j=(30e6,), zone_temperatures=(20.0,)))
    warm, _ = model.compute(None, snapshot(), {}, HeatRequest(demands_j=(30e6,), zone_temperatures=(40.0,)))

    # Assert
    assert cool.delivered_j == pytest.approx((10.8e6,))
    assert warm.delivered_j == pytest.approx((3.6e6,))


# ------------------------
# Hot water
# ------------------------
def cylinder(**kwargs):
    params = dict(
        volume_litres=200.0,
        setpoint=55.0,
        heater_power_kw=3.0,
        heat_loss_w_per_k=1.5,
        draw_off=DailyScheduleConfig(weekday=[50.0]),
        energy_supply="grid",
    )
    params.update(kwargs)
    return StorageCylinderModel(StorageCylinderConfig(**params))


def test_cylinder_draw_off_and_reheat():
    # Arrange
    model = cylinder()
    state = CylinderState(temperature=55.0)

    # Act
    demand = model.demand(state, snapshot(), {})
    result, new_state = model.compute(state, snapshot(), {})

    # Assert
    assert demand.energy_j == pytest.approx(50.0 * 4184.0 * 45.0)
    assert result.delivered_j == pytest.approx(demand.energy_j)
    assert new_state.temperature == pytest.approx(55.0)
    assert result.balance.residual_j == pytest.approx(0.0, abs=1e-6)


def test_cylinder_heater_power_limits_recovery():
    model = cylinder(heater_power_kw=1.0)
    result, new_state = model.compute(CylinderState(temperature=55.0), snapshot(), {})
    assert result.heater_output_j == pytest.approx(3.6e6)
    assert new_state.temperature < 55.0
    assert result.balance.residual_j == pytest.approx(0.0, abs=1e-6)


def test_cylinder_heater_off_when_control_off():
    model = cylinder(control="timer")
    result, new_state = model.compute(
        CylinderState(temperature=55.0), snapshot(), {"control": ControlOutput(on=False)}
    )
    assert result.fuel_j == 0.0
    assert new_state.temperature < 55.0


# ------------------------
# Generation and metering
# ------------------------
def test_photovoltaic_output_proportional_to_irradiance():
    model = PhotovoltaicModel(PhotovoltaicConfig(peak_power_kw=4.0, energy_supply="grid"))
    result, _ = model.compute(None, snapshot(solar=500.0), {})
    assert result.generation_j == pytest.approx(2000.0 * 0.96 * 3600.0)


def supply_handle():
    return ComponentHandle(ComponentKind.ENERGY_SUPPLY, 0, "grid")


def test_meter_nets_generation_against_demand():
    # Arrange
    meter = EnergySupplyMeter(
        EnergySupplyConfig(fuel=Fuel.ELECTRICITY, import_rate=0.3, standing_charge_per_day=0.24)
    )
    flows = [
        FuelFlow(supply=supply_handle(), end_use=EndUse.SPACE_HEATING, demand_j=3.6e6),
        FuelFlow(supply=supply_handle(), end_use=EndUse.GENERATION, generation_j=1.8e6),
    ]

    # Act
    reading, state = meter.compute(MeterState(), snapshot(), flows)

    # Assert
    assert reading.import_j == pytest.approx(1.8e6)
    assert reading.export_j == 0.0
    assert reading.demand_by_end_use_j == {EndUse.SPACE_HEATING: 3.6e6}
    assert reading.cost == pytest.approx(0.5 * 0.3 + 0.01)
    assert state.cost == pytest.approx(reading.cost)


def test_meter_exports_surplus_and_reads_tariff_series():
    # Arrange
    meter = EnergySupplyMeter(
        EnergySupplyConfig(fuel=Fuel.ELECTRICITY, import_rate_series="tariff", export_rate=0.05)
    )
    flows = [FuelFlow(supply=supply_handle(), end_use=EndUse.GENERATION, generation_j=7.2e6)]

    # Act
    reading, state = meter.compute(
        MeterState(cost=1.0, export_j=1.0), snapshot(features={"tariff": 0.4}), flows
    )

    # Assert
    assert reading.import_rate == 0.4
    assert reading.export_j == pytest.approx(7.2e6)
    assert reading.cost == pytest.approx(-0.1)
    assert state.cost == pytest.approx(0.9)
    assert state.export_j == pytest.approx(7.2e6 + 1.0)


def test_energy_supply_config_validation():
    config = EnergySupplyConfig(fuel=Fuel.UNMET_DEMAND, import_rate=0.1, import_rate_series="x")
    assert len(config.validate()) == 2
