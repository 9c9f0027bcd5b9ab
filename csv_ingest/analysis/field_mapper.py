# ==============================================
# SpecializedFieldMapper
# ==============================================
#
# PURPOSE:
#   Map one parsed CSV row onto the fixed "somatometria" schema,
#   finding each target field among arbitrarily named headers and
#   coercing its value to the field's storage type.
#
# WHY THIS CLASS EXISTS:
#   Files for the specialized schema come from different clinics
#   and spreadsheets, so the same field arrives as "Peso (kg)",
#   "PESO", "weight", "Apellido Paterno", "ap_paterno", ...
#   The alias table below is the single place that knows these
#   spellings; the classifier reuses its reference fragments.
#
# MODULE CONSTANTS:
# -----------------
#   - SOMATOMETRIA_SCHEMA_NAME       → table-name tag for specialized uploads
#   - SOMATOMETRIA_REFERENCE_FRAGMENTS → fragments the classifier counts
#   - SOMATOMETRIA_FIELD_ALIASES     → ordered target → aliases table
#   - FLOAT_FIELDS / INTEGER_FIELDS  → per-field coercion rules
#   - SOMATOMETRIA_FIELDS            → every stored target field, in order
#
# CLASS: SpecializedFieldMapper
# -----------------------------
#   Constructor:
#   ------------
#   - __init__(field_aliases=SOMATOMETRIA_FIELD_ALIASES)
#
#   Methods:
#   --------
#   - map_row(row: dict[str, str], original_headers: list[str]) -> dict
#       For each target field (table order), scan the headers in file
#       order; the first header whose normalized form bidirectionally
#       matches any alias supplies the value. Targets with no matching
#       header are left out of the result.
#
#   - coerce(target_field: str, raw_value) -> Any   (classmethod)
#       FLOAT_FIELDS   → float, "," accepted as decimal separator
#       INTEGER_FIELDS → int
#       anything else  → raw string, "" → None
#       Unparseable numbers become None; this never raises.
#
# FUNCTION:
# ---------
#   - bidirectional_match(a: str, b: str) -> bool
#       True if either string contains the other. "" is contained in every string.
#
# ==============================================

import math
from typing import Any, Dict, List, Optional, Tuple

from csv_ingest.normalization.column_normalizer import ColumnNameNormalizer


SOMATOMETRIA_SCHEMA_NAME = "somatometria"

SOMATOMETRIA_REFERENCE_FRAGMENTS: Tuple[str, ...] = (
    "no_control", "curp", "nombre", "paterno", "materno", "grupo", "edad",
    "certificacion_medica", "sexo", "peso", "perimetro", "estatura",
)

SOMATOMETRIA_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "no_control": ("no_control", "control", "numero_control"),
    "curp": ("curp",),
    "nombre": ("nombre", "name"),
    "paterno": ("paterno", "apellido_paterno", "ap_paterno"),
    "materno": ("materno", "apellido_materno", "ap_materno"),
    "grupo": ("grupo", "group"),
    "edad": ("edad", "age"),
    "certificacion_medica": ("certificacion_medica", "certificacion", "cert_medica"),
    "sexo": ("sexo", "sex", "genero"),
    "peso": ("peso", "weight"),
    "perimetro": ("perimetro", "perimeter"),
    "estatura": ("estatura", "altura", "height"),
    "tension": ("tension",),
    "tension_a": ("tension_a", "presion_arterial"),
    "presion_a": ("presion_a",),
    "tension_d": ("tension_d",),
    "frecuencia": ("frecuencia", "freq"),
    "temperatura": ("temperatura", "temp"),
    "saturacion": ("saturacion", "sat"),
    "glucometria": ("glucometria", "glucosa"),
    "imc": ("imc", "bmi"),
    "clasificacion": ("clasificacion", "classification"),
    "imp": ("imp", "clasificacion_imp", "clasificacion"),
}

FLOAT_FIELDS = frozenset({
    "peso", "perimetro", "estatura", "temperatura", "saturacion", "glucometria", "imc",
})

INTEGER_FIELDS = frozenset({
    "edad", "tension_a", "presion_a", "tension_d", "frecuencia",
})

SOMATOMETRIA_FIELDS: Tuple[str, ...] = tuple(SOMATOMETRIA_FIELD_ALIASES)


def bidirectional_match(a: str, b: str) -> bool:
    """
    Check whether either string contains the other.

    Args:
        a: First string (usually a normalized header)
        b: Second string (usually an alias or reference fragment)

    Returns:
        True on containment in either direction. An empty string is
        contained in every string, so a blank header matches everything.
    """
    return a in b or b in a


class SpecializedFieldMapper:
    """
    Maps a raw CSV row onto the fixed somatometria fields.
    """

    def __init__(self, field_aliases: Optional[Dict[str, Tuple[str, ...]]] = None):
        """
        Initialize the mapper.

        Args:
            field_aliases: Ordered target → aliases table. Order is the
                           tie-break when aliases of different targets overlap.
        """
        self.field_aliases = field_aliases or SOMATOMETRIA_FIELD_ALIASES

    def map_row(self, row: Dict[str, Optional[str]], original_headers: List[str]) -> Dict[str, Any]:
        """
        Map one row to target fields.

        Args:
            row: Original header → raw value
            original_headers: Headers in file order

        Returns:
            Target field → coerced value (or None), only for targets
            that some header matched
        """
        normalized_headers = [
            (header, ColumnNameNormalizer.normalize(header)) for header in original_headers
        ]

        mapped: Dict[str, Any] = {}
        for target_field, aliases in self.field_aliases.items():
            for original_header, cleaned in normalized_headers:
                if any(bidirectional_match(cleaned, alias) for alias in aliases):
                    mapped[target_field] = self.coerce(target_field, row.get(original_header))
                    break

        return mapped

    @classmethod
    def coerce(cls, target_field: str, raw_value: Optional[str]) -> Any:
        if target_field in FLOAT_FIELDS:
            return cls._to_float(raw_value)
        if target_field in INTEGER_FIELDS:
            return cls._to_int(raw_value)
        if raw_value is None or raw_value == "":
            return None
        return raw_value

    @staticmethod
    def _to_float(raw_value: Optional[str]) -> Optional[float]:
        if raw_value is None:
            return None
        text = str(raw_value).strip().replace(",", ".", 1)
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
        return value if math.isfinite(value) else None

    @staticmethod
    def _to_int(raw_value: Optional[str]) -> Optional[int]:
        if raw_value is None:
            return None
        text = str(raw_value).strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        # "30.0" style readings; truncate like a lenient integer parse
        try:
            value = float(text)
        except ValueError:
            return None
        return int(value) if math.isfinite(value) else None
