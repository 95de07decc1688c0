"""Cogs registering Houston's Discord event handlers."""
