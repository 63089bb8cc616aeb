"""
Preferences Store

Theme, preferred distance unit and the overridable mileage rate, each
stored as a plain string under its own key. Unreadable stored values fall
back to defaults; bad values passed to `update` are rejected.
"""

from decimal import Decimal
from typing import Optional, Union

from triplog.audit import AuditLogger
from triplog.config import get_settings
from triplog.deductions.calculator import parse_decimal
from triplog.models.trip import DistanceUnit, Preferences, Theme, ValidationIssue
from triplog.services.storage.interface import KeyValueStoreInterface, StorageError
from triplog.validation import ValidationError


class PreferencesStore:
    """Load and save `Preferences` through the key-value store."""

    def __init__(
        self,
        store: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        storage_settings = get_settings().storage
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._theme_key = storage_settings.theme_key
        self._unit_key = storage_settings.preferred_unit_key
        self._rate_key = storage_settings.mileage_rate_key

    async def load(self) -> Preferences:
        theme_raw = await self._store.get(self._theme_key)
        unit_raw = await self._store.get(self._unit_key)
        rate_raw = await self._store.get(self._rate_key)

        try:
            theme = Theme(theme_raw) if theme_raw else Theme.LIGHT
        except ValueError:
            theme = Theme.LIGHT
        try:
            unit = DistanceUnit(unit_raw) if unit_raw else DistanceUnit.MILES
        except ValueError:
            unit = DistanceUnit.MILES

        rate = parse_decimal(rate_raw)
        if rate is not None and rate < 0:
            rate = None

        return Preferences(theme=theme, distance_unit=unit, mileage_rate=rate)

    async def update(
        self,
        current: Preferences,
        *,
        theme: Optional[Union[Theme, str]] = None,
        distance_unit: Optional[Union[DistanceUnit, str]] = None,
        mileage_rate: Optional[Union[Decimal, str]] = None,
    ) -> Preferences:
        """
        Apply and persist the given changes.

        Pass mileage_rate="" to clear the override.

        Raises:
            ValidationError: If a value is not acceptable
            StorageError: If a write fails
        """
        issues: list[ValidationIssue] = []
        changes: dict = {}

        if theme is not None:
            try:
                changes["theme"] = Theme(theme)
            except ValueError:
                issues.append(_issue("theme", f"Unknown theme '{theme}'"))

        if distance_unit is not None:
            try:
                changes["distance_unit"] = DistanceUnit(distance_unit)
            except ValueError:
                issues.append(_issue("preferredUnit", f"Unknown distance unit '{distance_unit}'"))

        if mileage_rate is not None:
            if isinstance(mileage_rate, str) and not mileage_rate.strip():
                changes["mileage_rate"] = None
            else:
                rate = parse_decimal(mileage_rate)
                if rate is None or rate < 0:
                    issues.append(_issue(
                        "mileageRate",
                        f"Mileage rate must be a non-negative number (got '{mileage_rate}')",
                    ))
                else:
                    changes["mileage_rate"] = rate

        if issues:
            raise ValidationError(issues)

        updated = current.model_copy(update=changes)
        await self.save(updated, fields=list(changes))
        return updated

    async def toggle_theme(self, current: Preferences) -> Preferences:
        next_theme = Theme.LIGHT if current.is_dark else Theme.DARK
        return await self.update(current, theme=next_theme)

    async def save(self, preferences: Preferences, fields: Optional[list[str]] = None) -> None:
        """Persist the named fields (all of them by default)."""
        fields = fields if fields is not None else ["theme", "distance_unit", "mileage_rate"]
        try:
            if "theme" in fields:
                await self._store.set(self._theme_key, preferences.theme.value)
            if "distance_unit" in fields:
                await self._store.set(self._unit_key, preferences.distance_unit.value)
            if "mileage_rate" in fields:
                if preferences.mileage_rate is None:
                    await self._store.delete(self._rate_key)
                else:
                    await self._store.set(self._rate_key, str(preferences.mileage_rate))
        except StorageError as e:
            self._audit.log_storage_error("preferences", "save", str(e))
            raise
        self._audit.log_preferences_updated(fields)


def _issue(field: str, message: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="invalid_value",
        message=message,
        severity="error",
    )
