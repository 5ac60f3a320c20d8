"""Domain types and rules: the card document, accounts, usernames and the error taxonomy."""
