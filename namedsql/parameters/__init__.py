"""Named placeholder translation and type-directed parameter binding."""

from namedsql.parameters.binder import ParameterBinder, ValueKind, classify_value, epoch_millis
from namedsql.parameters.config import ParameterStyleConfig
from namedsql.parameters.translator import (
    PlaceholderTranslator,
    count_placeholders,
    escape_percent_literals,
    translate,
)
from namedsql.parameters.types import (
    BoundValue,
    DateValue,
    GenericValue,
    Named,
    ParameterSource,
    ParameterStyle,
    Positional,
    TextValue,
    TranslatedSQL,
    parameter_source_from_args,
)

__all__ = (
    "BoundValue",
    "DateValue",
    "GenericValue",
    "Named",
    "ParameterBinder",
    "ParameterSource",
    "ParameterStyle",
    "ParameterStyleConfig",
    "PlaceholderTranslator",
    "Positional",
    "TextValue",
    "TranslatedSQL",
    "ValueKind",
    "classify_value",
    "count_placeholders",
    "epoch_millis",
    "escape_percent_literals",
    "parameter_source_from_args",
    "translate",
)
