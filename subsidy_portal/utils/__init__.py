"""
Concurrency helpers for the Subsidy Portal services
"""

from .single_flight import InFlightCounter, SingleFlight

__all__ = [
    "InFlightCounter",
    "SingleFlight"
]
