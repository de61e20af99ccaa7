"""Build fixable units from a JSON remediation plan document.

Expected shape::

    {
      "projects": [
        {
          "name": "api",
          "targetFile": "services/api/requirements.txt",
          "remediation": {
            "upgrade": {"django@1.6.1": {"upgradeTo": "django@2.0.1"}},
            "pin": {"urllib3@1.25": "1.26.18"}
          }
        }
      ]
    }

A top-level list of projects is accepted as well.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from reqfix.core.errors import PlanFormatError
from reqfix.core.models import FixableUnit, RemediationPlan
from reqfix.core.workspace import Workspace


def load_units(plan_file: Path, workspace: Workspace) -> list[FixableUnit]:
    try:
        data = json.loads(plan_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise PlanFormatError(f"{plan_file} is not valid JSON: {e}") from e
    return units_from_data(data, workspace)


def units_from_data(data: Any, workspace: Workspace) -> list[FixableUnit]:
    projects = data.get("projects") if isinstance(data, dict) else data
    if not isinstance(projects, list):
        raise PlanFormatError("Plan must contain a list of projects")

    units = []
    for index, project in enumerate(projects):
        if not isinstance(project, dict):
            raise PlanFormatError(f"Project #{index} must be an object")
        remediation = project.get("remediation")
        try:
            plan = RemediationPlan.from_dict(remediation) if isinstance(remediation, dict) else None
        except ValueError as e:
            raise PlanFormatError(f"Project #{index}: {e}") from e
        units.append(FixableUnit(
            target_file=project.get("targetFile") or project.get("target_file"),
            plan=plan,
            workspace=workspace,
            project_name=project.get("name", ""),
        ))
    return units
