"""Dine-in coordination service: tables, orders and payments."""
