"""
Bootstrap component framework.

Each subpackage holds one component that registers itself with the
ComponentRegistry; the ComponentOrchestrator runs them in dependency order.
"""
