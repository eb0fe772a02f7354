"""Booking coordination core of the Grand Emily hotel site."""
