"""Core (UI-agnostic) diversion dashboard logic.

This package contains:
- field coercion and row normalization (spreadsheet rows -> DiversionRow)
- filter evaluation and filter-option discovery
- aggregation (scorecards, chart series, ranked tables, penalty candidates)
- the dashboard model builder and its compact context summary
- data loading (CSV export -> raw rows) and chart helpers (Altair -> Vega-Lite spec dict)
"""
