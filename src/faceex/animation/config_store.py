"""Action Unit and Expression configuration store.

Owns the two collections, validates every addition against the
configuration schema, and loads/saves the whole set as one JSON document.
Loading is all-or-nothing: a document that fails validation (and is not
force-loaded through the ``confirm`` channel) or cannot be read leaves the
current collections untouched.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Iterable, Optional

from faceex.animation.action_units import ActionUnit, Expression, au_number
from faceex.constants import (
    CHANNEL_COUNT, DEFAULT_CONFIG_PATH, DEFAULT_STRENGTHS, STRENGTH_LEVELS,
    STRENGTH_MAX, STRENGTH_MIN,
)
from faceex.core.config_loader import ConfigSourceError, Source, fetch_json, save_json
from faceex.core.events import EventBus, EventType
from faceex.core.schema import SchemaValidator, ValidationMessage, config_validator

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[list[ValidationMessage]], bool]
AlertFn = Callable[[str], None]


def _log_alert(message: str) -> None:
    logger.error(message)


class ConfigurationStore:
    """Manages Action Units and Expressions loaded from a JSON config."""

    def __init__(self, bus: Optional[EventBus] = None):
        self.bus = bus
        self.action_units: list[ActionUnit] = []
        self.expressions: list[Expression] = []
        self._validator: SchemaValidator = config_validator()
        self._au_validator = self._validator.subschema("properties", "actionUnits", "items")
        self._expr_validator = self._validator.subschema("properties", "expressions", "items")
        self._errors: list[ValidationMessage] = []

    # ── Queries ───────────────────────────────────────────────────

    def get_action_units(self) -> list[ActionUnit]:
        return list(self.action_units)

    def get_expressions(self) -> list[Expression]:
        return list(self.expressions)

    def get_action_unit_names(self) -> list[str]:
        return [au.key for au in self.action_units]

    def get_channels_in_use(self) -> list[str]:
        seen: dict[str, None] = {}
        for au in self.action_units:
            for name in au.channels:
                seen.setdefault(name, None)
        return list(seen)

    def find_action_unit(self, au_key: str) -> Optional[ActionUnit]:
        """First Action Unit whose number matches; the prefix is ignored."""
        for au in self.action_units:
            if au.matches(au_key):
                return au
        return None

    def find_expression(self, identifier: str) -> Optional[Expression]:
        for expr in self.expressions:
            if expr.identifier == identifier:
                return expr
        return None

    def get_blendshapes_for_au(self, au_key: str) -> list[dict[str, list[float]]]:
        """Channel->curve mappings of the AU, or ``[]`` when nothing matches."""
        au = self.find_action_unit(au_key)
        if au is None:
            return []
        return [dict(mapping) for mapping in au.blendshapes if mapping]

    def errors(self) -> list[ValidationMessage]:
        return list(self._errors)

    # ── Commands ──────────────────────────────────────────────────

    def add_action_unit(
        self,
        prefix: str,
        number: str,
        description: str,
        channel_names: Iterable[str],
        strengths: Iterable[float] = DEFAULT_STRENGTHS,
    ) -> bool:
        """Append a new Action Unit using one strength curve for every channel."""
        self._errors = []
        au = ActionUnit.with_default_strengths(
            prefix, number, description, channel_names, strengths,
        )
        if not self._au_validator.validate(au.to_dict()):
            self._errors = _prefixed(f"actionUnits.{len(self.action_units)}", self._au_validator.errors())
        if any(existing.key == au.key for existing in self.action_units):
            self._errors.append(ValidationMessage("number", f"Action Unit {au.key} already exists"))
        channels = set(self.get_channels_in_use()) | set(au.channels)
        if len(channels) > CHANNEL_COUNT:
            self._errors.append(ValidationMessage(
                "blendshapes",
                f"{len(channels)} distinct channels exceed the mesh limit of {CHANNEL_COUNT}",
            ))
        if self._errors:
            self._report("Action Unit was not added", self._errors)
            return False

        self.action_units.append(au)
        logger.info("Action Unit %s added with %d channels", au.key, len(au.channels))
        self._publish(EventType.ACTION_UNIT_ADDED, action_unit=au)
        return True

    def add_expression(self, identifier: str, au_keys: Iterable[str]) -> bool:
        self._errors = []
        expr = Expression(identifier=identifier, action_units=list(au_keys))
        if not self._expr_validator.validate(expr.to_dict()):
            self._errors = _prefixed(f"expressions.{len(self.expressions)}", self._expr_validator.errors())
        if self.find_expression(identifier) is not None:
            self._errors.append(ValidationMessage("identifier", f"Expression {identifier!r} already exists"))
        if self._errors:
            self._report("Expression was not added", self._errors)
            return False

        self.expressions.append(expr)
        logger.info("Expression %r added (%s)", identifier, "+".join(expr.action_units))
        self._publish(EventType.EXPRESSION_ADDED, expression=expr)
        return True

    def update_strengths(self, au_key: str, channel: str, strengths: Iterable[float]) -> bool:
        """Replace one channel's strength curve in an existing Action Unit."""
        self._errors = []
        values = [float(v) for v in strengths]
        au = self.find_action_unit(au_key)
        if au is None:
            self._errors.append(ValidationMessage("actionUnits", f"No Action Unit matches {au_key!r}"))
        elif channel not in au.channels:
            self._errors.append(ValidationMessage("blendshapes", f"{au.key} has no channel {channel!r}"))
        if len(values) != STRENGTH_LEVELS:
            self._errors.append(ValidationMessage(
                f"blendshapes.{channel}", f"expected {STRENGTH_LEVELS} values, got {len(values)}",
            ))
        if any(not STRENGTH_MIN <= v <= STRENGTH_MAX for v in values):
            self._errors.append(ValidationMessage(
                f"blendshapes.{channel}", f"values must lie in [{STRENGTH_MIN}, {STRENGTH_MAX}]",
            ))
        if self._errors:
            self._report("Strengths were not changed", self._errors)
            return False

        au.set_strengths(channel, values)
        logger.info("Strengths of %s.%s set to %s", au.key, channel, values)
        self._publish(EventType.STRENGTHS_CHANGED, au_key=au.key, channel=channel)
        return True

    def clear(self) -> None:
        self.action_units = []
        self.expressions = []
        self._errors = []
        self._publish(EventType.CONFIG_CLEARED)

    # ── Persistence ───────────────────────────────────────────────

    def validate(self, document) -> bool:
        """Schema check plus the mesh-wide channel limit."""
        self._validator.validate(document)
        self._errors = self._validator.errors()
        self._errors.extend(_channel_limit_errors(document))
        return not self._errors

    def save(self) -> dict:
        return {
            "actionUnits": [au.to_dict() for au in self.action_units],
            "expressions": [expr.to_dict() for expr in self.expressions],
        }

    def save_to_file(self, path: Path) -> Path:
        path = Path(path)
        save_json(path, self.save())
        logger.info("Saved %d Action Units and %d Expressions to %s",
                    len(self.action_units), len(self.expressions), path)
        return path

    def load(
        self,
        document,
        confirm: Optional[ConfirmFn] = None,
        alert: Optional[AlertFn] = None,
    ) -> bool:
        """Replace both collections with the content of ``document``.

        An invalid document is only taken when ``confirm`` is given and
        returns True for the reported errors.
        """
        if is_legacy_document(document):
            logger.info("Migrating legacy configuration format")
            try:
                document = migrate_legacy_document(document)
            except ValueError as e:
                self._errors = [ValidationMessage("<root>", f"legacy document cannot be migrated ({e})")]
                self._report("Configuration failed migration", self._errors)
                (alert or _log_alert)("Error in configuration file structure.")
                return False

        forced = False
        if not self.validate(document):
            errors = self.errors()
            self._report("Configuration failed validation", errors)
            (alert or _log_alert)("Error in configuration file structure.")
            if confirm is None or not confirm(errors):
                return False
            logger.warning("Loading invalid configuration on request")
            forced = True

        try:
            action_units = [ActionUnit.from_dict(d) for d in document["actionUnits"]]
            expressions = [Expression.from_dict(d) for d in document.get("expressions") or []]
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            self._errors.append(ValidationMessage("<root>", f"document cannot be loaded ({e!r})"))
            logger.error("Configuration could not be built: %r", e)
            return False

        self.action_units = action_units
        self.expressions = expressions
        logger.info("Configuration loaded: %d Action Units, %d Expressions",
                    len(action_units), len(expressions))
        self._publish(
            EventType.CONFIG_LOADED,
            action_units=len(action_units), expressions=len(expressions), forced=forced,
        )
        return True

    def load_source(
        self,
        source: Source,
        confirm: Optional[ConfirmFn] = None,
        alert: Optional[AlertFn] = None,
    ) -> bool:
        """Load from a file path or http(s) URL."""
        try:
            document = fetch_json(source)
        except ConfigSourceError as e:
            self._errors = [ValidationMessage("<source>", str(e))]
            logger.error("Could not load configuration: %s", e)
            (alert or _log_alert)(
                f"Could not load the JSON file ({e.reason}), Action Units have to be added manually."
            )
            return False
        return self.load(document, confirm=confirm, alert=alert)

    def load_default(self, confirm: Optional[ConfirmFn] = None, alert: Optional[AlertFn] = None) -> bool:
        return self.load_source(DEFAULT_CONFIG_PATH, confirm=confirm, alert=alert)

    # ── Internal ──────────────────────────────────────────────────

    def _report(self, headline: str, errors: list[ValidationMessage]) -> None:
        logger.warning("%s (%d errors)", headline, len(errors))
        for e in errors:
            logger.error("  %s", e)

    def _publish(self, event_type: EventType, **data) -> None:
        if self.bus is not None:
            self.bus.publish(event_type, **data)


def _prefixed(prefix: str, errors: list[ValidationMessage]) -> list[ValidationMessage]:
    return [
        ValidationMessage(prefix if e.path == "<root>" else f"{prefix}.{e.path}", e.message)
        for e in errors
    ]


def _channel_limit_errors(document) -> list[ValidationMessage]:
    try:
        channels = {
            name
            for au in document["actionUnits"]
            for mapping in au["blendshapes"]
            for name in mapping
        }
    except (KeyError, TypeError):
        return []  # Structural problems are reported by the schema
    if len(channels) > CHANNEL_COUNT:
        return [ValidationMessage(
            "actionUnits",
            f"{len(channels)} distinct channels exceed the mesh limit of {CHANNEL_COUNT}",
        )]
    return []


# ── Legacy format ────────────────────────────────────────────────────

_LEGACY_NAME_RE = re.compile(r"^\s*([A-Za-z]{0,2})\s*(\d{1,3})\b\s*[-:]?\s*(.*)$")


def is_legacy_document(document) -> bool:
    return (
        isinstance(document, dict)
        and "action_units" in document
        and "actionUnits" not in document
    )


def _split_legacy_name(name: str) -> tuple[str, str, str]:
    m = _LEGACY_NAME_RE.match(name)
    if m:
        prefix, number, rest = m.groups()
    else:
        n = au_number(name)
        prefix, number, rest = "", "" if n is None else str(n), name
    description = re.sub(r"\d", "", rest).strip(" -:")[:40]
    return prefix, number, description


def _records(value, path: str) -> list[dict]:
    """A legacy list of objects; a missing list counts as empty."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{path}: expected a list, got {type(value).__name__}")
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise ValueError(f"{path}.{i}: expected an object, got {type(item).__name__}")
    return value


def migrate_legacy_document(document: dict) -> dict:
    """Convert ``{action_units, combinedActionUnits}`` into the canonical format.

    Legacy Action Units carry one free-text ``name`` ("AU12 smile") instead of
    prefix/number/description; combined units become Expressions whose keys
    point at the migrated Action Units.

    Raises ValueError when a container or record has the wrong shape.
    """
    action_units = []
    keys: dict[str, str] = {}
    for i, legacy in enumerate(_records(document.get("action_units"), "action_units")):
        name = str(legacy.get("name", ""))
        prefix, number, description = _split_legacy_name(name)
        keys[name] = f"{prefix}{number}"
        mappings = _records(legacy.get("blendshapes"), f"action_units.{i}.blendshapes")
        action_units.append({
            "prefix": prefix,
            "number": number,
            "description": description,
            "blendshapes": [dict(m) for m in mappings],
        })

    expressions = []
    for i, combined in enumerate(_records(document.get("combinedActionUnits"), "combinedActionUnits")):
        refs = combined.get("actionUnits") or []
        if not isinstance(refs, list):
            raise ValueError(f"combinedActionUnits.{i}.actionUnits: expected a list")
        expressions.append({
            "identifier": str(combined.get("name", ""))[:40],
            "actionUnits": [keys.get(k, k) if isinstance(k, str) else k for k in refs],
        })
    return {"actionUnits": action_units, "expressions": expressions}
