"""Profile slug allocation, validation and redirect resolution service."""
