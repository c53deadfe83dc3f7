from __future__ import annotations

DEPARTMENT_LABELS = {
    "dentist": "Dentistry",
    "dental": "Dentistry",
    "dentistry": "Dentistry",
    "cardiologist": "Cardiology",
    "cardio": "Cardiology",
    "cardiology": "Cardiology",
    "general": "General",
    "gp": "General",
    "general physician": "General",
    "dermatologist": "Dermatology",
    "dermatology": "Dermatology",
    "pediatrician": "Pediatrics",
    "pediatrics": "Pediatrics",
    "orthopedic": "Orthopedics",
    "orthopedics": "Orthopedics",
}


def canonical_department(label: str) -> str:
    return DEPARTMENT_LABELS.get(label.strip().lower(), label)
