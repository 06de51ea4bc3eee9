"""Hydra ConfigStore registration utilities."""

from __future__ import annotations

from enum import Enum
from typing import Any

from hydra.core.config_store import ConfigStore
from loguru import logger
from pydantic import BaseModel


def _model_defaults(target_cls: type[Any]) -> dict[str, Any]:
    """Default field values of a pydantic model, as plain YAML-able values.

    Hydra composes in struct mode, so a node only accepts command-line
    overrides for keys it already holds.
    """
    if not (isinstance(target_cls, type) and issubclass(target_cls, BaseModel)):
        return {}
    defaults: dict[str, Any] = {}
    for field_name, field in target_cls.model_fields.items():
        if field.is_required():
            continue
        value = field.get_default(call_default_factory=True)
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        defaults[field_name] = value
    return defaults


def register(
    cls: type[Any] | None = None,
    *,
    group: str | None = None,
    name: str | None = None,
    **kwargs: Any,
) -> type[Any] | Any:
    """Decorator to register a class with Hydra's ConfigStore.

    Automatically creates a configuration entry with the correct ``_target_``
    pointing to the decorated class and registers it in the ConfigStore.
    Pydantic models additionally get every defaulted field copied into the
    node so that ``group.field=value`` overrides compose.

    If *group* is not provided, it is inferred from the last element of the
    module path (``datum_transformer.config`` registers under ``config``).

    Arguments:
        cls: The class to register.
        group: The ConfigStore group. If ``None``, inference is attempted.
        name: The name for the config. Defaults to class name.
        **kwargs: Extra values for the configuration node (``_convert_``,
            overridden defaults).
    """

    def _process_class(target_cls: type[Any]) -> type[Any]:
        target_path = f"{target_cls.__module__}.{target_cls.__name__}"
        config_name = name or target_cls.__name__
        config_group = group or target_cls.__module__.split(".")[-1]

        logger.debug(
            f"Registering {target_cls.__name__} as '{config_name}' "
            f"in group '{config_group}'"
        )
        node: dict[str, Any] = {"_target_": target_path}
        node.update(_model_defaults(target_cls))
        node.update(kwargs)
        ConfigStore.instance().store(group=config_group, name=config_name, node=node)

        return target_cls

    if cls is None:
        return _process_class
    return _process_class(cls)
