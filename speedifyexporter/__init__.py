"""Prometheus exporter for the Speedify VPN bonding client."""
