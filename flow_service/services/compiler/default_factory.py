"""
Default Factory - new screens and components with collision-free identifiers.
"""
import re
import uuid
from typing import Any, Iterable, Optional, Set, Union

from flow_service.config import settings
from flow_service.core.exceptions import MalformedDocument
from flow_service.models.schemas.component_catalog import (
    ComponentType,
    get_component_property_schema,
    get_default_title,
    normalize_component_type,
)
from flow_service.models.schemas.components import FlowComponent
from flow_service.models.schemas.core import FlowAction, Footer
from flow_service.models.schemas.flow import Screen
from flow_service.utils.logging import get_logger

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Screen ids may only contain letters and underscores on the platform.
_DIGIT_LETTERS = str.maketrans("0123456789", "ghijklmnop")


def normalize_title(title: str) -> str:
    """Case-normalized form of a title, comparable with generated ids"""
    return _WHITESPACE.sub("_", (title or "").strip().lower())


def _read(component: Any, key: str) -> Any:
    if isinstance(component, dict):
        return component.get(key)
    return getattr(component, key, None)


class DefaultFactory:
    """
    Creates placeholder screens and components.

    Generated component ids are `<type>_<n>` with the smallest positive `n`
    for which neither the id nor the generated title `<Default Title> <n>`
    matches an id or a case-normalized title among the existing components,
    so ids freed by deletions are reused only once nothing refers to them
    by that name anymore.
    """

    def new_screen_id(self, existing_ids: Optional[Iterable[str]] = None) -> str:
        taken = set(existing_ids or [])
        while True:
            candidate = "screen_" + uuid.uuid4().hex[:12].translate(_DIGIT_LETTERS)
            if candidate not in taken:
                return candidate

    def default_screen(
        self,
        existing_screens: Optional[Iterable[Any]] = None,
        screen_id: Optional[str] = None,
    ) -> Screen:
        """Empty screen with a fresh id, placeholder title and a submit footer"""
        existing_ids = [_read(screen, "id") for screen in (existing_screens or [])]
        screen = Screen(
            id=screen_id or self.new_screen_id(existing_ids),
            title=settings.default_screen_title,
            components=[],
            footer=Footer(
                label=settings.default_footer_label,
                action=FlowAction(name="complete"),
            ),
        )
        logger.debug("factory.screen.created", extra={"screen_id": screen.id})
        return screen

    def taken_identifiers(self, existing_components: Iterable[Any]) -> Set[str]:
        taken: Set[str] = set()
        for component in existing_components:
            component_id = _read(component, "id")
            if component_id:
                taken.add(component_id)
            title = _read(component, "title")
            if title:
                taken.add(normalize_title(title))
        return taken

    def next_suffix(self, component_type: ComponentType, existing_components: Iterable[Any]) -> int:
        """Smallest suffix whose generated id and generated title are both unused"""
        taken = self.taken_identifiers(existing_components)
        default_title = get_default_title(component_type)
        suffix = 1
        while (
            f"{component_type.value}_{suffix}" in taken
            or normalize_title(f"{default_title} {suffix}") in taken
        ):
            suffix += 1
        return suffix

    def default_component(
        self,
        component_type: Union[str, ComponentType],
        existing_components: Optional[Iterable[Any]] = None,
        component_id: Optional[str] = None,
    ) -> FlowComponent:
        """
        New component of `component_type` with its baseline properties.

        Raises:
            UnknownComponentType: type outside the catalog
            MalformedDocument: explicit id already present
        """
        canonical = normalize_component_type(component_type)
        existing = list(existing_components or [])
        default_title = get_default_title(canonical)

        if component_id is None:
            suffix = self.next_suffix(canonical, existing)
            component_id = f"{canonical.value}_{suffix}"
            title = f"{default_title} {suffix}"
        else:
            if component_id in {_read(component, "id") for component in existing}:
                raise MalformedDocument([f"component: duplicate component id '{component_id}'"])
            title = default_title

        component = FlowComponent(
            id=component_id,
            type=canonical,
            title=title,
            properties=get_component_property_schema(canonical)(),
        )

        logger.debug(
            "factory.component.created",
            extra={"component_id": component.id, "type": canonical.value}
        )
        return component


# Global instance
default_factory = DefaultFactory()


def default_screen(existing_screens: Optional[Iterable[Any]] = None) -> Screen:
    return default_factory.default_screen(existing_screens)


def default_component(
    component_type: Union[str, ComponentType],
    existing_components: Optional[Iterable[Any]] = None,
    component_id: Optional[str] = None,
) -> FlowComponent:
    return default_factory.default_component(component_type, existing_components, component_id)
