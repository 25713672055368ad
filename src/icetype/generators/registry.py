"""Explicit, injectable registry of schema generators."""

from typing import TYPE_CHECKING, Any, Callable

from loguru import logger

from ..errors import ErrorCode, GeneratorError

if TYPE_CHECKING:
    from ..base import Schema

Generator = Callable[..., Any]


class GeneratorRegistry:
    """
    Maps generator names to callables taking a `Schema`.

    Each registry is an ordinary object owned by its creator; there is no
    process-wide instance. Use `create_default_registry` for one pre-loaded
    with the built-in generators.

    Examples
    --------
        >>> registry = create_default_registry()
        >>> registry.names()
        ['sqlalchemy', 'polars', 'pydantic']
        >>> table = registry.generate("sqlalchemy", schema, table_name="users")
    """

    def __init__(self) -> None:
        self._generators: dict[str, Generator] = {}

    def register(self, name: str, generator: Generator, *, replace: bool = False) -> None:
        """
        Register ``generator`` under ``name``.

        Raises
        ------
        GeneratorError
            If ``name`` is taken and ``replace`` is False.
        """
        if name in self._generators and not replace:
            raise GeneratorError(
                f"Generator '{name}' is already registered",
                ErrorCode.GENERATOR_ALREADY_REGISTERED,
                {"generator": name},
            )
        self._generators[name] = generator
        logger.debug(f"Registered generator '{name}'")

    def unregister(self, name: str) -> bool:
        """Remove ``name``; return whether it was registered."""
        return self._generators.pop(name, None) is not None

    def get(self, name: str) -> Generator:
        """
        Return the generator registered under ``name``.

        Raises
        ------
        GeneratorError
            If nothing is registered under ``name``.
        """
        try:
            return self._generators[name]
        except KeyError:
            raise GeneratorError(
                f"No generator registered as '{name}'. "
                f"Available: {', '.join(self._generators) or 'none'}",
                ErrorCode.GENERATOR_NOT_FOUND,
                {"generator": name},
            ) from None

    def has(self, name: str) -> bool:
        return name in self._generators

    def names(self) -> list[str]:
        return list(self._generators)

    def clear(self) -> None:
        self._generators.clear()

    def generate(self, name: str, schema: "Schema", **options: Any) -> Any:
        """Run the generator registered under ``name`` on ``schema``."""
        return self.get(name)(schema, **options)


def create_default_registry() -> GeneratorRegistry:
    """Return a new registry holding the SQLAlchemy, Polars and Pydantic generators."""
    from .polars import create_polars_validator
    from .pydantic import create_pydantic_model
    from .sqlalchemy import create_sqlalchemy_table

    registry = GeneratorRegistry()
    registry.register("sqlalchemy", create_sqlalchemy_table)
    registry.register("polars", create_polars_validator)
    registry.register("pydantic", create_pydantic_model)
    return registry
