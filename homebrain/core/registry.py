"""
Homebrain Action Registry

Ordered, read-only set of forms built once at process start.
Shared by every in-flight command without locking.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from homebrain.core.entities import Action, ActionType, Form
from homebrain.core.errors import RegistryError


class ActionRegistry:
    """
    Registry of forms in registration order.

    Every action type belongs to exactly one form.

    Example:
        registry = ActionRegistry([vpn_form.form, lights_form.form])
        form = registry.form_for(ActionType.VPN_START)
    """

    def __init__(self, forms: Iterable[Form]) -> None:
        self._forms: List[Form] = []
        self._owners: Dict[ActionType, Form] = {}

        names = set()
        for form in forms:
            if form.name in names:
                raise RegistryError(f"Duplicate form name: {form.name}")
            names.add(form.name)

            for action in form.actions:
                owner = self._owners.get(action.action_type)
                if owner is not None:
                    raise RegistryError(
                        f"Action {action.action_type.value} registered in both "
                        f"'{owner.name}' and '{form.name}'"
                    )
                self._owners[action.action_type] = form

            self._forms.append(form)

    @property
    def forms(self) -> List[Form]:
        return list(self._forms)

    def __iter__(self) -> Iterator[Form]:
        return iter(self._forms)

    def __len__(self) -> int:
        return len(self._forms)

    def form_for(self, action_type: ActionType) -> Optional[Form]:
        """Returns the form owning the action type."""
        return self._owners.get(action_type)

    def get_action(self, action_type: ActionType) -> Optional[Action]:
        form = self._owners.get(action_type)
        if form is None:
            return None
        return form.get_action(action_type)
