"""
CuisineDuo - Household meal-planning backend.

Features:
- Inventory: receipt/photo scanning, price checks, voice corrections
- Recipes: chat, edit, search, generation, translation, images
- Swipe: household "swipe to match" meal planning
- Chat: Miam assistant, GIF search, in-app action orchestration
- Push: browser notifications for the household
"""

__version__ = "1.0.0"
