# Copyright 2013 Google Inc. All Rights Reserved.
#
# Use of this source code is governed by a MIT-style
# license that can be found in the LICENSE file or at
# http://opensource.org/licenses/MIT

"""Index of which revisions touched which paths, for backtracking.

While the dump is streamed, every path written to the output (and all of its
parent directories) is indexed under the revision that wrote it. Directories
created by a revision are indexed as soon as they are read, so later nodes of
the same revision and revisions not written yet can be found.

Backtracking answers: "which revision is the most recent one that left
something in the output at this path, or failing that, at one of its parent
directories?" That revision becomes the new copy source of a copy operation,
and tells how many parent directories of an extra path are missing.
"""

from svndumpsplitter import util


class Error(Exception):
  """Parent class for this module's errors."""


class ConsistencyError(Error):
  """The dump and the index disagree in a way that cannot be repaired."""


class RelevancePathIndex(object):
  """Maps path to the revisions that touched it, ordered by revision number.

  Revisions are any objects with a num attribute. The index only ever grows.
  """

  def __init__(self):
    self._index = {}

  def Add(self, path, revision):
    """Index revision under exactly path."""
    revisions = self._index.setdefault(util.NormPath(path), [])
    pos = len(revisions)
    while pos > 0 and revisions[pos - 1].num > revision.num:
      pos -= 1
    if pos > 0 and revisions[pos - 1] is revision:
      return
    revisions.insert(pos, revision)

  def Register(self, path, revision):
    """Index revision under path and every parent directory of it."""
    for ancestor in util.Ancestors(path):
      self.Add(ancestor, revision)

  def FindAncestor(self, path, upper_bound=None, current=None):
    """Find the last revision that touched path or its closest ancestor.

    Args:
      path: the path to start looking at
      upper_bound: if given, only revisions numbered upper_bound or lower are
                   considered
      current: the revision being finalized, which must not resolve to itself

    Returns:
      a pair (revision, matched_path) where matched_path is path or the
      ancestor of path at which revision was found

    Raises:
      ConsistencyError: if neither path nor any of its ancestors is indexed

    At each level only one candidate is picked: the last revision (or the last
    one within upper_bound). If that candidate is current, the search moves on
    to the parent directory instead of trying older candidates.
    """
    for level in util.Ancestors(path):
      revisions = self._index.get(level)
      if not revisions:
        continue
      found = None
      if upper_bound is None:
        found = revisions[-1]
      else:
        for revision in reversed(revisions):
          if revision.num <= upper_bound:
            found = revision
            break
      if found is not None and found is not current:
        return found, level
    raise ConsistencyError('No relevant revision found for %r%s'
                           % (path, '' if upper_bound is None
                              else ' at or before r%d' % upper_bound))
