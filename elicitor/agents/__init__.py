"""Strands agents backing the text-understanding collaborator."""
