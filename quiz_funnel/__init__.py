"""Quiz funnel core: answer ledger, flow controller, scoring and localization."""

__version__ = "0.1.0"
