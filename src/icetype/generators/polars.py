"""Polars validation model generator with dataframe-level constraint checking."""

from typing import TYPE_CHECKING, Any, Dict, List, Tuple

import polars as pl
from loguru import logger

if TYPE_CHECKING:
    from ..base import Schema
    from ..fields import FieldDefinition

_SIMPLE_DTYPES: dict[str, Any] = {
    "string": pl.Utf8,
    "text": pl.Utf8,
    "varchar": pl.Utf8,
    "char": pl.Utf8,
    "enum": pl.Utf8,
    "ref": pl.Utf8,
    "uuid": pl.Utf8,
    "json": pl.Utf8,
    # Generic containers travel as JSON text, like json
    "map": pl.Utf8,
    "struct": pl.Utf8,
    "list": pl.Utf8,
    "int": pl.Int32,
    "long": pl.Int64,
    "bigint": pl.Int64,
    "float": pl.Float32,
    "double": pl.Float64,
    "boolean": pl.Boolean,
    "date": pl.Date,
    "time": pl.Time,
    "binary": pl.Binary,
    "fixed": pl.Binary,
}


def get_polars_dtype(field: "FieldDefinition") -> pl.DataType:
    """
    Return the Polars dtype for a field.

    Raises
    ------
    TypeError
        If the field's base type has no Polars equivalent.
    """
    if field.type == "decimal":
        dtype: Any = pl.Decimal(field.precision, field.scale or 0)
    elif field.type == "timestamp":
        dtype = pl.Datetime("us")
    elif field.type == "timestamptz":
        dtype = pl.Datetime("us", "UTC")
    elif field.type in _SIMPLE_DTYPES:
        dtype = _SIMPLE_DTYPES[field.type]
    else:
        raise TypeError(
            f"Field '{field.name}' has type '{field.type}' with no Polars mapping"
        )

    if field.is_array:
        return pl.List(dtype)
    return dtype


def create_polars_schema(schema: "Schema") -> Dict[str, pl.DataType]:
    """Return ``{column: dtype}`` for every non-relation field of ``schema``."""
    return {
        name: get_polars_dtype(field) for name, field in schema.scalar_fields().items()
    }


def _literal_default(field: "FieldDefinition") -> Any:
    """Default usable in a DataFrame, or None when there is none."""
    if not field.has_default:
        return None
    default = field.default_value
    if isinstance(default, dict) and "function" in default:
        return None
    return default


class PolarsValidator:
    """A validator for Polars DataFrames based on a compiled schema."""

    def __init__(self, schema: "Schema") -> None:
        self.ice_schema = schema
        self.fields = schema.scalar_fields()
        self._polars_schema = create_polars_schema(schema)
        self._constraints = self._build_constraints()

    def _build_constraints(self) -> List[Tuple[str, pl.Expr, str]]:
        """
        Build list of constraint expressions from directives.

        Note: Constraints are evaluated after null-checking, so they
        don't need to handle null values explicitly.
        """
        constraints = []

        for vector in self.ice_schema.directives.vector or ():
            if vector.field not in self.fields:
                continue
            field = self.fields[vector.field]
            if not field.is_array:
                continue
            constraints.append(
                (
                    vector.field,
                    pl.col(vector.field).list.len() == vector.dimensions,
                    f"{vector.field} must have {vector.dimensions} dimensions",
                )
            )

        return constraints

    def validate(
        self,
        df: pl.DataFrame,
        strict: bool = True,
        show_violations: bool = False,
        fill_nulls: bool = False,
    ) -> pl.DataFrame:
        """
        Validate and coerce a DataFrame to match the schema.

        Parameters
        ----------
        df : pl.DataFrame
            Input Polars DataFrame.
        strict : bool, default True
            If True, raise on validation errors. If False, filter invalid rows.
        show_violations : bool, default False
            If True, log filtered violations.
        fill_nulls : bool, default False
            If True, replace null values with field defaults (if specified).

        Returns
        -------
        pl.DataFrame
            Validated DataFrame with correct types, columns in schema order.

        Raises
        ------
        ValueError
            If validation fails and strict=True.

        Notes
        -----
        Behavior of defaults:
        - Missing columns with defaults are always added to the DataFrame
        - Missing optional columns without defaults are added as nulls
        - Existing null values are filled with defaults only if fill_nulls=True
        - Nulls in optional fields are preserved
        """
        # Non-optional fields without a literal default must be present
        required_cols = {
            name
            for name, field in self.fields.items()
            if not field.is_optional and _literal_default(field) is None
        }
        missing = required_cols - set(df.columns)
        if missing:
            raise ValueError(f"Missing required columns: {sorted(missing)}")

        for field_name, field in self.fields.items():
            if field_name in df.columns:
                continue
            dtype = self._polars_schema[field_name]
            default = _literal_default(field)
            df = df.with_columns(pl.lit(default).cast(dtype).alias(field_name))
            if default is not None:
                logger.info(
                    f"Added column '{field_name}' with default value: {default}"
                )

        # Cast to correct types and ensure column order matches schema
        df = df.select(
            [
                pl.col(col_name).cast(dtype, strict=False)
                for col_name, dtype in self._polars_schema.items()
            ]
        )

        for field_name, field in self.fields.items():
            null_count = df[field_name].null_count()
            if null_count == 0:
                continue

            default = _literal_default(field)
            if fill_nulls and default is not None:
                dtype = self._polars_schema[field_name]
                df = df.with_columns(
                    pl.col(field_name).fill_null(pl.lit(default).cast(dtype)).alias(field_name)
                )
                logger.info(
                    f"Filled {null_count} null values in '{field_name}' "
                    f"with default: {default}"
                )
                continue

            if not field.is_optional:
                if strict:
                    raise ValueError(
                        f"Column '{field_name}' has {null_count} null values "
                        f"but is not optional"
                    )
                df = df.filter(pl.col(field_name).is_not_null())

        violations = []
        for column, constraint_expr, error_msg in self._constraints:
            # Nulls in optional columns are not violations
            check = constraint_expr | pl.col(column).is_null()
            try:
                violation_count = df.filter(~check).height
            except pl.exceptions.PolarsError as e:
                logger.opt(exception=e).warning(
                    f"Could not evaluate constraint '{error_msg}'"
                )
                continue

            if violation_count == 0:
                continue
            if strict:
                sample_violations = df.filter(~check).head(5)
                raise ValueError(
                    f"Constraint violation: {error_msg}\n"
                    f"Found {violation_count} violations.\n"
                    f"Sample violations:\n{sample_violations}"
                )
            violations.append(
                {
                    "constraint": error_msg,
                    "count": violation_count,
                    "rows": df.filter(~check).head(10),
                }
            )
            df = df.filter(check)

        if show_violations:
            for violation in violations:
                logger.warning(f"Constraint violation: {violation['constraint']}")
                logger.warning(f"Count: {violation['count']}")
                logger.warning(f"Rows: {violation['rows']}")
        return df

    @property
    def schema(self) -> Dict[str, pl.DataType]:
        """Return the Polars schema dict."""
        return self._polars_schema.copy()

    def describe_constraints(self) -> List[str]:
        """Return human-readable list of constraints."""
        return [msg for _, _, msg in self._constraints]


def create_polars_validator(schema: "Schema") -> PolarsValidator:
    """
    Create a Polars validator from a compiled schema.

    Parameters
    ----------
    schema : Schema
        A compiled IceType schema.

    Returns
    -------
    PolarsValidator
        An instance of PolarsValidator for the given schema.
    """
    return PolarsValidator(schema)
