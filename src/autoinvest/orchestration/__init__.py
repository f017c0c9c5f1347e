"""Orchestration Layer - Auto-invest workflow execution."""

from autoinvest.orchestration.executor import AutoInvestExecutor

__all__ = ["AutoInvestExecutor"]
