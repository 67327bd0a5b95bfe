"""Document reconciliation engine.

Turns employee timesheets into invoices, invoices into payroll entries, and
advances payment statuses as calendar time passes.
"""

__version__ = "1.0.0"
