"""
Flow document model: Flow → Screens → Components.

Screens and components are owned by value. Navigation targets, condition
subjects and branch members are plain ids resolved through the id-indexed
maps below, and may dangle while a document is being edited.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator, model_validator

from flow_service.config import get_settings
from flow_service.core.exceptions import MalformedDocument
from .components import FlowComponent
from .core import FlowAction, Footer
from .validation import (
    branch_cycle_message,
    duplicate_component_message,
    duplicate_screen_message,
    missing_branch_member_message,
    shared_branch_member_message,
    unknown_screen_message,
)


def canonical_component_order(components: List[FlowComponent]) -> Optional[List[FlowComponent]]:
    """
    Order components so that branch members directly follow their control
    in pre-order. Returns None when the branch structure is not a forest
    (duplicate ids, missing or shared members, cycles).
    """
    index: Dict[str, FlowComponent] = {}
    for component in components:
        if component.id in index:
            return None
        index[component.id] = component

    owners: Dict[str, str] = {}
    for component in components:
        for member_id in component.branch_members():
            if member_id in owners or member_id not in index:
                return None
            owners[member_id] = component.id

    ordered: List[FlowComponent] = []

    def visit(component: FlowComponent) -> None:
        ordered.append(component)
        for member_id in component.branch_members():
            visit(index[member_id])

    for component in components:
        if component.id not in owners:
            visit(component)

    if len(ordered) != len(components):
        return None
    return ordered


class Screen(BaseModel):
    """One page of a flow"""
    id: str = Field(..., frozen=True, min_length=1, description="Join key for navigation references")
    title: str = ""
    heading: Optional[str] = None
    body: Optional[str] = None
    components: List[FlowComponent] = Field(default_factory=list)
    footer: Optional[Footer] = None
    data: Dict[str, Any] = Field(default_factory=dict, description="Declared dynamic data sources")

    @model_validator(mode='after')
    def canonicalize_components(self) -> 'Screen':
        self._canonicalize()
        return self

    def _canonicalize(self) -> None:
        ordered = canonical_component_order(self.components)
        if ordered is not None:
            self.components = ordered

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def component_index(self) -> Dict[str, FlowComponent]:
        index: Dict[str, FlowComponent] = {}
        for component in self.components:
            index.setdefault(component.id, component)
        return index

    def get_component(self, component_id: str) -> Optional[FlowComponent]:
        return self.component_index.get(component_id)

    def branch_owner(self, component_id: str) -> Optional[FlowComponent]:
        for component in self.components:
            if component_id in component.branch_members():
                return component
        return None

    def top_level_components(self) -> List[FlowComponent]:
        owned = {member for component in self.components for member in component.branch_members()}
        return [component for component in self.components if component.id not in owned]

    def iter_actions(self) -> List[Tuple[str, FlowAction]]:
        """(source label, action) pairs for the footer and every component"""
        actions: List[Tuple[str, FlowAction]] = []
        if self.footer is not None:
            actions.append(("footer", self.footer.action))
        for component in self.components:
            for action in component.iter_actions():
                actions.append((f"component '{component.id}'", action))
        return actions

    def navigation_references(self) -> List[Tuple[str, str]]:
        return [
            (source, action.next_screen)
            for source, action in self.iter_actions()
            if action.is_navigation and action.next_screen
        ]

    @property
    def is_terminal(self) -> bool:
        return any(action.completes_flow for _, action in self.iter_actions())

    @property
    def uses_data_exchange(self) -> bool:
        return any(action.name == "data_exchange" for _, action in self.iter_actions())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def rename(self, title: str) -> None:
        self.title = title

    def replace_components(self, components: Iterable[Any]) -> None:
        self.components = [FlowComponent.model_validate(component) for component in components]
        self._canonicalize()

    def add_component(self, component: FlowComponent, branch_owner: Optional[str] = None) -> FlowComponent:
        """
        Append a component, optionally as the last member of the first
        branch of an existing control component.
        """
        if component.id in self.component_index:
            raise MalformedDocument([duplicate_component_message(self.id, component.id)])

        if branch_owner is not None:
            owner = self.get_component(branch_owner)
            if owner is None or not owner.is_control:
                raise MalformedDocument(
                    [f"screen {self.id}: '{branch_owner}' is not a control component on this screen"]
                )
            branches = owner.properties.branches()
            if not branches:
                raise MalformedDocument(
                    [f"screen {self.id}: component '{branch_owner}' has no branch to add to"]
                )
            branches[0].components.append(component.id)

        self.components.append(component)
        self._canonicalize()
        return component

    def remove_component(self, component_id: str) -> List[FlowComponent]:
        """
        Remove a component, its branch members (recursively) and its
        membership in any branch. Returns every removed component.
        """
        index = self.component_index
        if component_id not in index:
            raise MalformedDocument([f"screen {self.id}: unknown component '{component_id}'"])

        doomed: List[str] = []
        pending = [component_id]
        while pending:
            current = pending.pop(0)
            if current in doomed or current not in index:
                continue
            doomed.append(current)
            pending.extend(index[current].branch_members())

        for component in self.components:
            if component.id in doomed or not component.is_control:
                continue
            for branch in component.properties.branches():
                branch.components[:] = [member for member in branch.components if member not in doomed]

        removed = [component for component in self.components if component.id in doomed]
        self.components = [component for component in self.components if component.id not in doomed]
        return removed

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def structural_problems(self) -> List[str]:
        problems: List[str] = []
        seen = set()
        for component in self.components:
            if component.id in seen:
                problems.append(duplicate_component_message(self.id, component.id))
            seen.add(component.id)

        index = self.component_index
        owners: Dict[str, str] = {}
        for component in self.components:
            for member_id in component.branch_members():
                if member_id not in index:
                    problems.append(missing_branch_member_message(self.id, component.id, member_id))
                elif member_id in owners:
                    problems.append(shared_branch_member_message(self.id, member_id))
                else:
                    owners[member_id] = component.id

        for component in self.components:
            if not component.is_control:
                continue
            current, visited = component.id, set()
            while current in owners and current not in visited:
                visited.add(current)
                current = owners[current]
                if current == component.id:
                    problems.append(branch_cycle_message(self.id, component.id))
                    break

        return problems


class Flow(BaseModel):
    """Top-level flow document"""
    name: str = ""
    categories: List[str] = Field(default_factory=list)
    screens: List[Screen] = Field(default_factory=list)

    @field_validator('categories', mode='before')
    @classmethod
    def default_categories(cls, v: Any) -> List[str]:
        if not v:
            return [get_settings().default_flow_category]
        if isinstance(v, str):
            v = [v]
        elif not isinstance(v, (list, tuple, set)):
            raise ValueError(f"categories must be a list of strings, got {type(v).__name__}")
        return [str(category).strip().upper() for category in v]

    @model_validator(mode='after')
    def ensure_categories(self) -> 'Flow':
        if not self.categories:
            self.categories = [get_settings().default_flow_category]
        return self

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def screen_index(self) -> Dict[str, Screen]:
        index: Dict[str, Screen] = {}
        for screen in self.screens:
            index.setdefault(screen.id, screen)
        return index

    def get_screen(self, screen_id: str) -> Optional[Screen]:
        return self.screen_index.get(screen_id)

    def references_to(self, screen_id: str) -> List[str]:
        """Every navigation reference targeting `screen_id`, as messages"""
        references = []
        for screen in self.screens:
            for source, target in screen.navigation_references():
                if target == screen_id:
                    references.append(f"screen {screen.id}: {source} navigates to '{screen_id}'")
        return references

    def dangling_references(self) -> List[str]:
        index = self.screen_index
        return [
            unknown_screen_message(screen.id, source, target)
            for screen in self.screens
            for source, target in screen.navigation_references()
            if target not in index
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_screen(self, screen: Screen) -> Screen:
        if screen.id in self.screen_index:
            raise MalformedDocument([duplicate_screen_message(screen.id)])
        self.screens.append(screen)
        return screen

    def remove_screen(self, screen_id: str) -> List[str]:
        """
        Delete a screen. References elsewhere are left in place; the
        references that now dangle are returned.
        """
        if screen_id not in self.screen_index:
            raise MalformedDocument([f"flow: unknown screen '{screen_id}'"])
        self.screens = [screen for screen in self.screens if screen.id != screen_id]
        return [
            message
            for message in self.dangling_references()
            if message.endswith(f"unknown screen '{screen_id}'")
        ]

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def check_invariants(self) -> List[str]:
        problems: List[str] = []
        if not self.name or not self.name.strip():
            problems.append("flow: name must not be empty")
        if not self.screens:
            problems.append("flow: at least one screen is required")

        seen = set()
        for screen in self.screens:
            if screen.id in seen:
                problems.append(duplicate_screen_message(screen.id))
            seen.add(screen.id)
            problems.extend(screen.structural_problems())

        return problems
