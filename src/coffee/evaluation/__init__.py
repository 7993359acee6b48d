"""Result and log message formatting."""
