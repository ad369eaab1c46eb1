"""Vault Casino - Telegram duel and economy bot."""
