"""Shared configuration and observability utilities."""
