"""Booking domain: entities, state machine, eligibility and validation rules."""
