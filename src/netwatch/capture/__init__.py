"""Connection sources — collaborators that list the host's sockets."""
