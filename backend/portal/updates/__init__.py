"""Weekly updates and roadmap."""
