def _three(self):
    self.bar += 30
    return self


Foo.three = _three
