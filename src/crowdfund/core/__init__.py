"""Core types, configuration, errors and logging for the crowdfund ledger."""
