"""a11y-report: record WCAG 2.2 accessibility issues and export or file them."""

__version__ = "1.0.0"
