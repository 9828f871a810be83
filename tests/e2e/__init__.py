"""
Browser tests for the published reports landing page.

Demonstrates:
- Page Object Model (POM) pattern
- Locator strategies using data-testid attributes
"""
