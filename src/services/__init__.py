"""
Service modules for the campaign workflow service.

This package contains the business logic that runs when a campaign moves
through the sales pipeline: the stage engine, inventory reservations,
talent approvals, exclusivity checks, contract and billing generation,
and notification delivery.
"""
