"""Batch Quote Calculator.

Schema-driven quotation calculator. Job types (typed fields plus a
compute rule) and machines are loaded from CSV sources; quotations hold
items priced by their job type's rule, with a global tax percentage.

Layout:
- config: settings and error taxonomy
- models: pydantic schema and quotation models
- services: schema builder, registry, quotation model, totals, sources, session
- validators: persisted snapshot validation
- utils: numeric helpers, logging and text reports
"""

__version__ = "1.0.0"
