"""
Subsidy Portal

Eligibility-rule normalization and submission/document workflow for a
subsidy enrollment portal. Providers author programs and eligibility rules,
applicants submit applications and upload supporting documents.
"""

__version__ = "1.0.0"
__author__ = "Subsidy Portal Team"
__description__ = "Eligibility rule normalization and submission workflow for subsidy programs"
