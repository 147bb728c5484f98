"""Telegram group directory service."""
