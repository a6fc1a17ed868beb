"""Full Uproar commerce core: inventory reservation and role-based permissions."""

__version__ = "1.0.0"
