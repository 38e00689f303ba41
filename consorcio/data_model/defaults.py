from __future__ import annotations

from typing import List


def default_plan_rows() -> List[dict[str, float | str]]:
    return [
        {
            "administrator": "Rodobens",
            "category": "Automobile",
            "creditValue": 60000.0,
            "installmentValue": 980.0,
            "termMonths": 72,
            "adminFeePercent": 16.0,
            "averageBidPercent": 25.0,
            "group": "A123",
            "notes": "Plano popular",
        },
        {
            "administrator": "Porto Seguro",
            "category": "Automobile",
            "creditValue": 100000.0,
            "installmentValue": 1620.0,
            "termMonths": 84,
            "adminFeePercent": 17.0,
            "averageBidPercent": 30.0,
            "group": "PS-09",
            "notes": "Carta alta flex",
        },
        {
            "administrator": "Porto Seguro",
            "category": "RealEstate",
            "creditValue": 300000.0,
            "installmentValue": 2850.0,
            "termMonths": 200,
            "adminFeePercent": 18.0,
            "averageBidPercent": 35.0,
            "group": "IM-22",
            "notes": "Residencial",
        },
        {
            "administrator": "Rodobens",
            "category": "Motorcycle",
            "creditValue": 22000.0,
            "installmentValue": 420.0,
            "termMonths": 60,
            "adminFeePercent": 15.0,
            "averageBidPercent": 18.0,
            "group": "M-7",
            "notes": "Entry",
        },
    ]
