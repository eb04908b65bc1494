PREFIX = "v0.0.2"
