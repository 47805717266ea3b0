"""Grounded services.

- safety_service: crisis detection runs before any model (deterministic guardrails)
- llm_service: on-device model lifecycle with single-flight loading
- report_service: clinical report synthesis with deterministic fallback
"""
