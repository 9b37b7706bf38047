"""
Articles app for SafraReport.

Provides article storage, the review ledger, and the editorial workflow.
"""
