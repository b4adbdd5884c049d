"""Builds the scheduling objects once and hands them around by reference."""
from __future__ import annotations

from dataclasses import dataclass, field

from .client import ClinicApiClient
from .config import Settings
from .lifecycle import ScheduleController
from .models import Doctor
from .navigation import CalendarNavigation


@dataclass
class ScheduleContext:
    settings: Settings
    client: ClinicApiClient
    navigation: CalendarNavigation
    controller: ScheduleController
    doctors: list[Doctor] = field(default_factory=list)

    async def refresh_doctors(self) -> list[Doctor]:
        self.doctors = await self.client.list_doctors()
        return self.doctors


def build_context(settings: Settings | None = None, client=None) -> ScheduleContext:
    settings = settings or Settings.from_env()
    client = client or ClinicApiClient(settings.base_url, timeout=settings.timeout, token=settings.api_token)
    return ScheduleContext(
        settings=settings,
        client=client,
        navigation=CalendarNavigation(clock=settings.clock()),
        controller=ScheduleController(client, guarded_transitions=settings.guarded_transitions),
    )
