PREFIX = "base"


def describe(value):
    return f"{PREFIX}:{value}"
