from __future__ import annotations

import logging

from db import SettingsRepository
from models import UnitSystem

logger = logging.getLogger(__name__)


class UnitService:
    """Convert and format body and load measurements.

    Values are stored metric (kg, cm); conversion happens only when a value
    is shown to or read from the user.
    """

    KG_TO_LB = 2.20462
    LB_TO_KG = 0.453592
    CM_TO_IN = 0.393701
    IN_TO_CM = 2.54

    def __init__(self, settings_repo: SettingsRepository | None = None) -> None:
        self.settings = settings_repo
        self._unit_system = UnitSystem.METRIC
        if settings_repo is not None:
            saved = settings_repo.get_text("unit_system", UnitSystem.METRIC.value)
            self._unit_system = (
                UnitSystem.IMPERIAL if saved == UnitSystem.IMPERIAL.value else UnitSystem.METRIC
            )

    @property
    def current_unit_system(self) -> UnitSystem:
        return self._unit_system

    def set_unit_system(self, unit_system: UnitSystem | str) -> None:
        unit_system = UnitSystem(unit_system)
        self._unit_system = unit_system
        if self.settings is not None:
            self.settings.set_text("unit_system", unit_system.value)
        logger.info("Unit system set to %s", unit_system.value)

    def convert_weight(
        self, value: float, from_system: UnitSystem, to_system: UnitSystem
    ) -> float:
        if from_system == to_system:
            return value
        if from_system == UnitSystem.METRIC:
            return value * self.KG_TO_LB
        return value * self.LB_TO_KG

    def convert_height(
        self, value: float, from_system: UnitSystem, to_system: UnitSystem
    ) -> float:
        if from_system == to_system:
            return value
        if from_system == UnitSystem.METRIC:
            return value * self.CM_TO_IN
        return value * self.IN_TO_CM

    @staticmethod
    def feet_inches_to_inches(feet: int, inches: float) -> float:
        return feet * 12 + inches

    def format_weight(self, value: float, system: UnitSystem | None = None) -> str:
        """Format a kg value in ``system`` (default: the current preference)."""
        target = system or self._unit_system
        converted = self.convert_weight(value, UnitSystem.METRIC, target)
        return f"{converted:.1f} {self.weight_unit(target)}"

    def format_height(self, value: float, system: UnitSystem | None = None) -> str:
        """Format a cm value in ``system`` (default: the current preference)."""
        target = system or self._unit_system
        converted = self.convert_height(value, UnitSystem.METRIC, target)
        return f"{converted:.1f} {self.height_unit(target)}"

    def format_height_imperial(self, centimeters: float) -> str:
        """Render a cm value as feet and whole inches, e.g. ``5' 9"``."""
        total = self.convert_height(centimeters, UnitSystem.METRIC, UnitSystem.IMPERIAL)
        feet = int(total // 12)
        inches = int(total % 12)
        return f"{feet}' {inches}\""

    @staticmethod
    def display_name(unit_system: UnitSystem) -> str:
        return "Metric" if unit_system == UnitSystem.METRIC else "Imperial"

    @staticmethod
    def weight_unit(unit_system: UnitSystem) -> str:
        return "kg" if unit_system == UnitSystem.METRIC else "lbs"

    @staticmethod
    def height_unit(unit_system: UnitSystem) -> str:
        return "cm" if unit_system == UnitSystem.METRIC else "in"
