from __future__ import annotations

import json
from datetime import date
from typing import Any

from asgiref.sync import async_to_sync
from django.core.management.base import (
    BaseCommand,
    CommandError,
    CommandParser,
)

from soil_moisture.exceptions import ComputationError
from soil_moisture.serializers import TIME_STEPS, serialize_result
from soil_moisture.services import compute_soil_moisture_index


def _parse_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise CommandError(f"Invalid date: {raw}") from exc


class Command(BaseCommand):
    help = "Compute the soil moisture index and print it as JSON."

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("--start", required=True)
        parser.add_argument("--end", required=True)
        parser.add_argument(
            "--time-step", choices=TIME_STEPS, default="weekly"
        )
        parser.add_argument("--region", default=None)
        parser.add_argument("--index", default=None)

    def handle(self, *args: object, **options: Any) -> None:
        start = _parse_date(options["start"])
        end = _parse_date(options["end"])
        if start >= end:
            raise CommandError("--start must be before --end.")
        try:
            result = async_to_sync(compute_soil_moisture_index)(
                start,
                end,
                options["time_step"],
                options["region"],
                index=options["index"],
            )
        except (ComputationError, ValueError) as exc:
            raise CommandError(str(exc)) from exc
        self.stdout.write(
            json.dumps(serialize_result(result), indent=2, default=str)
        )
