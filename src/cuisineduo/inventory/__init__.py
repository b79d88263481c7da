"""
CuisineDuo - Inventory AI.

Receipt and product-photo scanning, price checks, conversational scan
refinement and dictated inventory updates.
"""
