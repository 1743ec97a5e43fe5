"""
clientflow.routes
=================

State → portal destination and display copy.

Presentation layers import these lookups instead of hard‑coding where each
stage lives, so the mapping has exactly one home.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import RegistryError
from .models import ClientState
from .settings import settings


@dataclass(frozen=True)
class StateLabel:
    display_name: str
    description: str
    color: str


ROUTES: Dict[ClientState, str] = {
    ClientState.INTAKE:           "/client/intake",
    ClientState.DESIGN_REVIEW:    "/client/locked",
    ClientState.PREVIEW_READY:    "/client/preview",
    ClientState.ACTIVATION:       "/client/activate",
    ClientState.FINAL_ONBOARDING: "/client/final",
    ClientState.LIVE:             "/client/live",
    ClientState.SUPPORT:          "/client/support",
}

LABELS: Dict[ClientState, StateLabel] = {
    ClientState.INTAKE:           StateLabel("Getting Started", "Tell us about your business", "blue"),
    ClientState.DESIGN_REVIEW:    StateLabel("In Review", "We're building your preview", "yellow"),
    ClientState.PREVIEW_READY:    StateLabel("Preview Ready", "Review your site mockup", "purple"),
    ClientState.ACTIVATION:       StateLabel("Activate", "Complete payment to continue", "orange"),
    ClientState.FINAL_ONBOARDING: StateLabel("Final Details", "Provide your final content", "cyan"),
    ClientState.LIVE:             StateLabel("Live", "Your site is live!", "green"),
    ClientState.SUPPORT:          StateLabel("Support", "We're here to help", "slate"),
}

if not set(ROUTES) == set(ClientState) == set(LABELS):
    raise RegistryError("every state needs a route and a label")


def route_for(state: ClientState) -> str:
    """Portal path for *state*, e.g. ``/client/preview``."""
    return ROUTES[ClientState(state)]


def label_for(state: ClientState) -> StateLabel:
    return LABELS[ClientState(state)]


def url_for(state: ClientState, base_url: Optional[str] = None) -> str:
    """Absolute portal URL for *state* (base defaults to ``settings.portal_url``)."""
    base = str(base_url or settings.portal_url).rstrip("/")
    return f"{base}{route_for(state)}"


def state_catalog() -> List[Dict[str, str]]:
    """Every state with its route and display copy, in lifecycle order."""
    return [
        {
            "state": s.value,
            "route": ROUTES[s],
            "label": LABELS[s].display_name,
            "description": LABELS[s].description,
            "color": LABELS[s].color,
        }
        for s in ClientState
    ]
