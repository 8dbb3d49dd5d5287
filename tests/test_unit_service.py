import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import Database, SettingsRepository
from models import UnitSystem
from unit_service import UnitService


def test_weight_round_trip():
    units = UnitService()
    pounds = units.convert_weight(82.5, UnitSystem.METRIC, UnitSystem.IMPERIAL)
    assert pounds == pytest.approx(181.88, abs=0.01)
    back = units.convert_weight(pounds, UnitSystem.IMPERIAL, UnitSystem.METRIC)
    assert back == pytest.approx(82.5, abs=0.01)


def test_same_system_is_identity():
    units = UnitService()
    assert units.convert_weight(82.5, UnitSystem.METRIC, UnitSystem.METRIC) == 82.5
    assert units.convert_height(175.0, UnitSystem.IMPERIAL, UnitSystem.IMPERIAL) == 175.0


def test_height_conversion():
    units = UnitService()
    assert units.convert_height(2.54, UnitSystem.IMPERIAL, UnitSystem.METRIC) == pytest.approx(6.4516)
    assert units.convert_height(100.0, UnitSystem.METRIC, UnitSystem.IMPERIAL) == pytest.approx(39.3701)
    assert UnitService.feet_inches_to_inches(5, 9) == 69


def test_formatting():
    units = UnitService()
    assert units.format_weight(82.5) == "82.5 kg"
    assert units.format_weight(100.0, UnitSystem.IMPERIAL) == "220.5 lbs"
    assert units.format_height(175.0) == "175.0 cm"
    assert units.format_height(175.0, UnitSystem.IMPERIAL) == "68.9 in"
    assert units.format_height_imperial(175.0) == "5' 8\""
    assert UnitService.display_name(UnitSystem.IMPERIAL) == "Imperial"
    assert UnitService.weight_unit(UnitSystem.METRIC) == "kg"
    assert UnitService.height_unit(UnitSystem.IMPERIAL) == "in"


def test_preference_is_persisted(tmp_path):
    db = Database(str(tmp_path / "units.db"))
    yaml_path = str(tmp_path / "settings.yaml")
    settings = SettingsRepository(db, yaml_path)
    units = UnitService(settings)
    assert units.current_unit_system == UnitSystem.METRIC
    units.set_unit_system("imperial")
    assert units.format_weight(100.0) == "220.5 lbs"
    assert UnitService(SettingsRepository(db, yaml_path)).current_unit_system == UnitSystem.IMPERIAL
    db.close()


def test_unknown_unit_system_rejected():
    with pytest.raises(ValueError):
        UnitService().set_unit_system("stone")
