"""ED triage application.

Holds the intake, ESI draft scoring, validation, routing and escalation
workflow together with the boards, audit log and realtime alerts the
triage dashboard consumes.
"""
