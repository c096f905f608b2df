# This project was developed with assistance from AI tools.
"""WalletBot -- conversational mobile wallet with community loan underwriting."""
