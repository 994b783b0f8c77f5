"""Grid, field-line maps and upscaling."""
