"""
CuisineDuo - Recipe AI.

Chat about a recipe, dictate edits, search the cookbook, generate full
recipes, suggest from inventory, translate, and illustrate.
"""
