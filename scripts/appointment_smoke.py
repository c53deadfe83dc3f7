#!/usr/bin/env python3
from __future__ import annotations

import importlib
import json
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi.testclient import TestClient

ENDPOINTS = ("extract-text", "extract-entities", "normalize", "final-json")


@dataclass
class Scenario:
  name: str
  text: str
  expected_status: str
  expected_department: str | None = None


def final_status(payload: Any) -> str | None:
  if not isinstance(payload, dict):
    return None
  status = payload.get("status")
  return status if isinstance(status, str) else None


def run() -> int:
  repo_root = Path(__file__).resolve().parents[1]
  backend_dir = repo_root / "backend"
  if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

  backend_module = importlib.import_module("main")
  backend_module = importlib.reload(backend_module)

  scenarios = [
    Scenario(
      name="Typed Dentist Request",
      text="Book dentist next Friday at 3pm",
      expected_status="ok",
      expected_department="Dentistry",
    ),
    Scenario(
      name="Cardiology With Notes",
      text="Cardio checkup tomorrow at 10am, please bring old reports",
      expected_status="ok",
      expected_department="Cardiology",
    ),
    Scenario(
      name="No Extractable Details",
      text="asdf qwerty",
      expected_status="needs_clarification",
    ),
  ]

  results: list[dict[str, Any]] = []

  with TestClient(backend_module.app) as client:
    empty_response = client.post("/api/appointments/final-json", json={"input": ""})
    results.append(
      {
        "name": "Empty Input Rejected",
        "expected_status": "400",
        "responses": {"final-json": {"status_code": empty_response.status_code, "body": empty_response.json()}},
        "actual_status": str(empty_response.status_code),
        "pass": empty_response.status_code == 400,
      }
    )

    for scenario in scenarios:
      scenario_result: dict[str, Any] = {
        "name": scenario.name,
        "expected_status": scenario.expected_status,
        "responses": {},
      }
      for endpoint in ENDPOINTS:
        response = client.post(f"/api/appointments/{endpoint}", json={"input": scenario.text})
        body: Any
        try:
          body = response.json()
        except ValueError:
          body = {"raw": response.text[:500]}
        scenario_result["responses"][endpoint] = {"status_code": response.status_code, "body": body}

      final = scenario_result["responses"]["final-json"]
      actual_status = final_status(final["body"])
      scenario_result["actual_status"] = actual_status
      passed = final["status_code"] == 200 and actual_status == scenario.expected_status
      if passed and scenario.expected_department:
        appointment = final["body"].get("appointment") or {}
        passed = appointment.get("department") == scenario.expected_department
        if not passed:
          scenario_result["error"] = (
            f"Expected department {scenario.expected_department}, got {appointment.get('department')!r}"
          )
      elif not passed:
        scenario_result["error"] = f"Expected status {scenario.expected_status}, got {actual_status!r}"
      scenario_result["pass"] = passed
      results.append(scenario_result)

  passed_count = sum(1 for item in results if item.get("pass"))
  failed = len(results) - passed_count
  timestamp = datetime.now(timezone.utc).isoformat()
  providers = [candidate.provider for candidate in backend_module.container.pipeline.extractor.providers]

  report_lines = [
    "# Appointment Parser Smoke Report",
    "",
    f"- Timestamp (UTC): `{timestamp}`",
    f"- Providers: `{', '.join(providers) or 'none configured'}`",
    f"- Timezone: `{backend_module.container.settings.timezone}`",
    f"- APPOINTMENT_EXTRACTOR_PROVIDER: `{os.getenv('APPOINTMENT_EXTRACTOR_PROVIDER', 'auto')}`",
    f"- Total scenarios: `{len(results)}`",
    f"- Passed: `{passed_count}`",
    f"- Failed: `{failed}`",
    "",
    "## Scenario Results",
    "",
  ]

  for item in results:
    status = "PASS" if item.get("pass") else "FAIL"
    report_lines.append(f"### {status} - {item['name']}")
    report_lines.append(f"- Expected status: `{item.get('expected_status')}`")
    report_lines.append(f"- Actual status: `{item.get('actual_status')}`")
    if item.get("error"):
      report_lines.append(f"- Error: `{item['error']}`")
    for endpoint, response in item["responses"].items():
      report_lines.append(f"- `{endpoint}` ({response['status_code']}):")
      report_lines.append("```json")
      report_lines.append(json.dumps(response["body"], indent=2, ensure_ascii=True))
      report_lines.append("```")
    report_lines.append("")

  report_path = repo_root / "APPOINTMENT_SMOKE_REPORT.md"
  report_path.write_text("\n".join(report_lines), encoding="utf-8")
  print(f"Wrote report: {report_path}")
  print(f"Passed {passed_count}/{len(results)} scenarios.")

  return 0 if failed == 0 else 1


if __name__ == "__main__":
  raise SystemExit(run())
