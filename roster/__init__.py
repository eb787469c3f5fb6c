"""Local roster manager: athletes, teams, events and attendance."""
