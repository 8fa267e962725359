class Path(object):
    """A path split into its ordered, slash separated components.

    Empty and '.' segments are dropped. An absolute path keeps a leading
    empty component so that joining the components with '/' restores the
    leading slash. A path with nothing left in it becomes '.', and the root
    directory on its own becomes '/'.
    """

    def __init__(self, path):
        if not path:
            raise ValueError('Empty path')

        segments = path.split('/')
        components = [s for s in segments if s and s != '.']

        if segments[0] == '':
            components.insert(0, '')

        if not components:
            components = ['.']
        elif components == ['']:
            components = ['/']

        self.components = components

    def __len__(self):
        return len(self.components)

    def __iter__(self):
        return iter(self.components)

    def __repr__(self):
        return 'Path(%r)' % self.full()

    def full(self):
        return '/'.join(self.components)

    def dirname(self):
        if len(self.components) > 1:
            parts = self.components[:-1]
            if parts == ['']:
                return '/'
            return '/'.join(parts)
        return '.'

    def basename(self, ext=None):
        name = self.components[-1]
        if ext and name.endswith(ext):
            name = name[:-len(ext)]
        return name

    def shift(self):
        return self.components.pop(0)

    def push(self, part):
        self.components.extend(part.split('/'))
        return len(self.components)

    def pop(self):
        return self.components.pop()

    def count(self):
        return len(self.components)
