"""auditking_server — FastAPI REST API for the Audit King SDK.

Exposes the InspectionService over HTTP: template authoring and AI import,
inspection runs, PDF export, sites and reference data.
"""
