"""Checks on the charts/confidential-containers Helm chart.

Run tests with: pytest tests/helm
"""
