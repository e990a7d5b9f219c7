"""HTTP front end for the keypad calculator engine."""
