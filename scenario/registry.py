"""Payload registry and the replay plan built on top of it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from . import payloads
from .models import Action, ActionType
from .payloads import ActionValidationError, Payload

PayloadBuilder = Callable[[Action], Payload]


@dataclass(slots=True)
class PayloadSpec:
    action_type: ActionType
    builder: PayloadBuilder


class PayloadRegistry:
    """Maps each action type to the builder producing its typed payload."""

    def __init__(self) -> None:
        self._builders: Dict[ActionType, PayloadSpec] = {}

    def register(self, action_type: Union[ActionType, str], builder: PayloadBuilder) -> PayloadBuilder:
        kind = ActionType(action_type)
        self._builders[kind] = PayloadSpec(action_type=kind, builder=builder)
        return builder

    def get(self, action_type: Union[ActionType, str]) -> PayloadSpec:
        try:
            return self._builders[ActionType(action_type)]
        except (KeyError, ValueError) as exc:
            raise KeyError(f"Unknown action type '{action_type}'") from exc

    def build(self, action: Action) -> Payload:
        spec = self.get(action.action_type)
        return spec.builder(action)


registry = PayloadRegistry()

registry.register(ActionType.NAVIGATE, payloads.build_navigate)
registry.register(ActionType.CLICK, payloads.build_click)
registry.register(ActionType.DOUBLE_CLICK, payloads.build_click)
registry.register(ActionType.INPUT, payloads.build_input)
registry.register(ActionType.SELECT, payloads.build_select)
registry.register(ActionType.CHECKBOX, payloads.build_checkbox)
registry.register(ActionType.KEYDOWN, payloads.build_keydown)
registry.register(ActionType.UPLOAD, payloads.build_upload)
registry.register(ActionType.CHANGE, payloads.build_change)
registry.register(ActionType.WAIT, payloads.build_wait)
registry.register(ActionType.RELOAD, payloads.build_history)
registry.register(ActionType.BACK, payloads.build_history)
registry.register(ActionType.FORWARD, payloads.build_history)
registry.register(ActionType.DRAG_AND_DROP, payloads.build_drag_and_drop)
registry.register(ActionType.SCROLL, payloads.build_scroll)
registry.register(ActionType.WINDOW_RESIZE, payloads.build_window_resize)
registry.register(ActionType.API_REQUEST, payloads.build_api_request)
registry.register(ActionType.DATABASE_EXECUTION, payloads.build_database_execution)
registry.register(ActionType.ADD_BROWSER_STORAGE, payloads.build_browser_storage)
registry.register(ActionType.PAGE_CREATE, payloads.build_page_create)
registry.register(ActionType.PAGE_CLOSE, payloads.build_page_close)
registry.register(ActionType.PAGE_FOCUS, payloads.build_page_focus)
registry.register(ActionType.ASSERT, payloads.build_assert)


@dataclass(slots=True)
class ReplayStep:
    """One action of a plan, ready for dispatch or carrying its validation error."""

    index: int
    action_type: str
    page_index: int = 0
    action: Optional[Action] = None
    payload: Optional[Payload] = None
    error: Optional[ActionValidationError] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None and self.payload is not None

    def require_payload(self) -> Payload:
        if self.error is not None:
            raise self.error
        if self.payload is None:
            raise ActionValidationError("action has no payload", action_type=self.action_type)
        return self.payload


def _raw_action_type(raw: Any) -> str:
    if isinstance(raw, Mapping):
        return str(raw.get("action_type") or "unknown")
    return "unknown"


@dataclass(slots=True)
class ReplayPlan:
    steps: List[ReplayStep] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[ReplayStep]:
        return iter(self.steps)

    @property
    def invalid_steps(self) -> List[ReplayStep]:
        return [step for step in self.steps if step.error is not None]

    @classmethod
    def from_actions(
        cls,
        actions: Sequence[Union[Action, Mapping[str, Any]]],
        payload_registry: Optional[PayloadRegistry] = None,
    ) -> "ReplayPlan":
        """Validate ``actions`` and build one step per entry.

        Validation problems are stored on the step instead of being raised so
        that a single malformed action does not prevent the rest of the batch
        from running.
        """

        reg = payload_registry or registry
        steps: List[ReplayStep] = []
        for index, raw in enumerate(actions):
            if isinstance(raw, Action):
                action = raw
            else:
                try:
                    action = Action.model_validate(raw)
                except ValidationError as exc:
                    steps.append(
                        ReplayStep(
                            index=index,
                            action_type=_raw_action_type(raw),
                            error=ActionValidationError(
                                f"malformed action: {exc.error_count()} validation error(s)",
                                action_type=_raw_action_type(raw),
                                details={
                                    "errors": exc.errors(
                                        include_url=False, include_context=False, include_input=False
                                    )
                                },
                            ),
                        )
                    )
                    continue
            step = ReplayStep(
                index=index,
                action_type=action.action_type.value,
                page_index=action.page_index,
                action=action,
            )
            try:
                step.payload = reg.build(action)
            except ActionValidationError as exc:
                step.error = exc
            except KeyError as exc:
                step.error = ActionValidationError(str(exc), action_type=step.action_type)
            steps.append(step)
        return cls(steps=steps)


__all__ = ["PayloadRegistry", "PayloadSpec", "ReplayPlan", "ReplayStep", "registry"]
