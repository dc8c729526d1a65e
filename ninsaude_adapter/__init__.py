"""Webhook adapter that books Ninsaude appointments for chat/automation platforms."""
