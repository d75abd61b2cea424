"""Pure HTML parsers: profile page, profile sections, inventory report."""
