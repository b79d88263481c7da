"""CuisineDuo - Household chat: the Miam assistant and GIF search."""
