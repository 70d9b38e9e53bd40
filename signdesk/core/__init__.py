"""Analysis orchestration core: lifecycle rules, record store and polling."""
