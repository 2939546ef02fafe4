"""Remote file probing over raw.githubusercontent.com with a response cache."""
