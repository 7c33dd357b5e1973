# Copyright 2013 Google Inc. All Rights Reserved.
#
# Use of this source code is governed by a MIT-style
# license that can be found in the LICENSE file or at
# http://opensource.org/licenses/MIT

"""Helper functions for svndumpsplitter."""

import re

# The repository root
ROOT = ''

# Top-level directories of the standard trunk/branches/tags layout
TOP_LEVEL_DIRS = ('trunk', 'branches', 'tags')


def NormPath(path):
  """Strip leading and trailing /'s so paths compare equal."""
  return path.strip('/')


def Dirname(path):
  """Return the parent directory of path ('' for top-level paths)."""
  return path.rpartition('/')[0]


def Ancestors(path):
  """Yield path, its parent, its grandparent, etc., ending with ROOT."""
  path = NormPath(path)
  while path:
    yield path
    path = Dirname(path)
  yield ROOT


class ModuleFilter(object):
  """Decides whether a node touches one module of a trunk/branches/tags repo.

  The module is a regular expression which has to match one entire path
  segment. The module is expected at trunk/<module>,
  branches/<branch>/<module> and tags/<tag>/<module>.

  Classification is not simply True/False:
    TOP_LEVEL_ROOT: trunk, branches or tags being created. These are kept,
                    but there is no parent directory to resolve them against.
    MODULE: the node belongs to the module, or creates, replaces or deletes a
            branch or tag that may contain it.
    EXTRA: the node's path is an extra path that is still tracked.
    IRRELEVANT: none of the above.

  Examples (module: foo):
    trunk (dir add): TOP_LEVEL_ROOT
    branches/v1 (dir add): MODULE
    tags/1.0 (delete): MODULE
    trunk/foo (dir add): MODULE
    branches/v1/foo/bar.c: MODULE
    trunk/bar/foo: IRRELEVANT
  """
  IRRELEVANT = 0
  TOP_LEVEL_ROOT = 1
  MODULE = 2
  EXTRA = 3

  def __init__(self, module, extras=None):
    """Create a new ModuleFilter.

    Args:
      module: regular expression matching the module directory name
      extras: an extras.ExtraPaths or None
    """
    self.module = module
    self.extras = extras
    self._module_re = re.compile(r'\A(?:%s)\Z' % module)

  def _ModuleIndex(self, parts):
    """Index of the path segment where the module is expected, or None."""
    if not parts:
      return None
    if parts[0] == 'trunk':
      return 1
    if parts[0] in ('branches', 'tags'):
      return 2
    return None

  def ModuleOf(self, path):
    """Return the module segment of a trunk/branch/tag path, or None."""
    parts = NormPath(path).split('/')
    index = self._ModuleIndex(parts)
    if index is None or len(parts) <= index:
      return None
    return parts[index]

  def IsModulePath(self, path):
    """True if path is the module directory or anything below it."""
    module = self.ModuleOf(path)
    return module is not None and bool(self._module_re.match(module))

  def Classify(self, node, revision_number):
    """Classify a node of the given revision.

    Args:
      node: an svndump.Node
      revision_number: input revision number the node belongs to

    Returns:
      TOP_LEVEL_ROOT, MODULE, EXTRA or IRRELEVANT
    """
    path = NormPath(node.path)
    parts = path.split('/')
    if (node.kind == 'dir' and node.action == 'add'
        and path in TOP_LEVEL_DIRS):
      return self.TOP_LEVEL_ROOT
    if len(parts) == 2 and parts[0] in ('branches', 'tags'):
      # A branch or tag root that is added must also keep its deletes
      if node.action in ('delete', 'replace'):
        return self.MODULE
      if node.kind == 'dir' and node.action == 'add':
        return self.MODULE
    if self.IsModulePath(path):
      return self.MODULE
    if self.extras is not None and self.extras.IsRelevant(path,
                                                          revision_number):
      return self.EXTRA
    return self.IRRELEVANT
