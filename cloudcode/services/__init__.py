"""Domain services: code editor records, projects, AI assistant."""
