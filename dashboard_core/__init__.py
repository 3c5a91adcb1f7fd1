"""Core (UI-agnostic) dashboard logic.

This package contains:
- sheet retrieval (Google Sheets gviz envelope -> typed records)
- row normalization driven by declarative field maps
- the order / line-item join
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- the refresh orchestrator that owns the current snapshot
"""
