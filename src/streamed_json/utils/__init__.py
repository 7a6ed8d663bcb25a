"""Transport helpers: errors, logging and streamed responses."""
