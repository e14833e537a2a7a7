"""Scenario context construction and feature/scenario/tag metadata decorators."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, TypeVar

from . import ambient
from .configuration import BddConfiguration, get_configuration
from .context import ScenarioContext
from .models import ScenarioOptions
from .traits import TraitBridge

FEATURE_ATTR = "__bdd_feature__"
SCENARIO_ATTR = "__bdd_scenario__"
TAGS_ATTR = "__bdd_tags__"

DecoratedT = TypeVar("DecoratedT")


@dataclass(frozen=True)
class FeatureInfo:
    name: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ScenarioInfo:
    name: Optional[str] = None
    tags: tuple[str, ...] = ()


def feature(name: Optional[str] = None, description: Optional[str] = None) -> Callable[[DecoratedT], DecoratedT]:
    """Mark a test class (or module-level holder) as a feature."""

    def decorator(obj: DecoratedT) -> DecoratedT:
        setattr(obj, FEATURE_ATTR, FeatureInfo(name=name, description=description))
        return obj

    return decorator


def scenario(name: Optional[str] = None, *tags: str) -> Callable[[DecoratedT], DecoratedT]:
    def decorator(obj: DecoratedT) -> DecoratedT:
        setattr(obj, SCENARIO_ATTR, ScenarioInfo(name=name, tags=tuple(tags)))
        return obj

    return decorator


def tag(*names: str) -> Callable[[DecoratedT], DecoratedT]:
    def decorator(obj: DecoratedT) -> DecoratedT:
        # Decorators apply bottom-up; prepend so tags keep their written order.
        setattr(obj, TAGS_ATTR, tuple(names) + tuple(getattr(obj, TAGS_ATTR, ())))
        return obj

    return decorator


def _owner_of(source: Any) -> Any:
    if inspect.isclass(source) or inspect.ismodule(source):
        return source
    return type(source)


class ScenarioContextFactory:
    """Creates contexts wired with the configured options, observers, handlers and bridge."""

    def __init__(
        self,
        configuration: Optional[BddConfiguration] = None,
        *,
        options: Optional[ScenarioOptions] = None,
        trait_bridge: Optional[TraitBridge] = None,
    ) -> None:
        self._configuration = configuration
        self._options = options
        self._trait_bridge = trait_bridge

    @property
    def configuration(self) -> BddConfiguration:
        return self._configuration or get_configuration()

    def create(
        self,
        feature_name: str,
        scenario_name: str,
        feature_description: Optional[str] = None,
        *,
        tags: Iterable[str] = (),
    ) -> ScenarioContext:
        configuration = self.configuration
        context = ScenarioContext(
            feature_name,
            scenario_name,
            feature_description=feature_description,
            options=self._options or configuration.options,
            trait_bridge=self._trait_bridge or configuration.trait_bridge_factory(),
            observers=configuration.observers,
            handler_factory=configuration.handler_factory,
        )
        context.add_tags(*tags)
        return context

    def create_from_source(
        self,
        source: Any,
        scenario_name: Optional[str] = None,
        *,
        test: Optional[Callable[..., Any]] = None,
        feature_name: Optional[str] = None,
    ) -> ScenarioContext:
        """
        Build a context from decorator metadata.

        The feature is ``feature_name``, else ``@feature`` on the source's class or
        module (falling back to its name). The scenario name is, in order: ``scenario_name``, the
        ``@scenario`` name of the test, the test's function name, ``"Scenario"``.
        The test is ``test`` or the one registered with :func:`ambient.register_test`.
        """

        owner = _owner_of(source)
        feature_info: FeatureInfo = getattr(owner, FEATURE_ATTR, None) or FeatureInfo()
        test = test or ambient.current_test()
        scenario_info: ScenarioInfo = getattr(test, SCENARIO_ATTR, None) or ScenarioInfo()

        resolved_name = (
            scenario_name
            or scenario_info.name
            or (getattr(test, "__name__", None) if test is not None else None)
            or "Scenario"
        )
        tags = [
            *getattr(owner, TAGS_ATTR, ()),
            *(getattr(test, TAGS_ATTR, ()) if test is not None else ()),
            *scenario_info.tags,
        ]
        return self.create(
            feature_name or feature_info.name or owner.__name__,
            resolved_name,
            feature_info.description,
            tags=tags,
        )
