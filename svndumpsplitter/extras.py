# Copyright 2013 Google Inc. All Rights Reserved.
#
# Use of this source code is governed by a MIT-style
# license that can be found in the LICENSE file or at
# http://opensource.org/licenses/MIT

"""Extra paths kept in the output even though they are outside the module."""

import logging

from svndumpsplitter import util

LOGGER = logging.getLogger(__name__)


class Error(Exception):
  """Parent class for this module's errors."""


class ParseError(Error):
  """Unable to parse an extras file."""


class ExtraPaths(object):
  """Paths to keep up to a maximum input revision.

  Besides the configured paths, ExtraPaths remembers which paths have been
  materialized in the output: extra paths whose first add was written, and
  directories created to hold them. Each of those is created at most once.
  """

  def __init__(self, bounds=None):
    """Create a new ExtraPaths.

    Args:
      bounds: a dict {str: int} mapping path to the last input revision in
              which changes to that path are kept
    """
    self._bounds = {}
    self._materialized = set()
    for path, max_rev in (bounds or {}).items():
      self.Add(path, max_rev)

  def Add(self, path, max_rev):
    self._bounds[util.NormPath(path)] = max_rev

  def IsRelevant(self, path, revision_number):
    """True if path is an extra path and revision_number is within bounds."""
    max_rev = self._bounds.get(util.NormPath(path))
    return max_rev is not None and revision_number <= max_rev

  def Materialize(self, path):
    """Mark path as created in the output.

    Returns:
      True the first time it is called for path, False afterwards
    """
    path = util.NormPath(path)
    if path in self._materialized:
      return False
    self._materialized.add(path)
    return True

  def __contains__(self, path):
    return util.NormPath(path) in self._bounds

  def __len__(self):
    return len(self._bounds)


def ParseExtrasFile(stream):
  """Read extra paths from a file-like object.

  Args:
    stream: iterable of lines in the form "<max-revision> <path>"

  Returns:
    an ExtraPaths

  Raises:
    ParseError: if a line cannot be parsed

  Blank lines and lines starting with # are ignored. Paths may contain spaces.
  """
  extras = ExtraPaths()
  for lineno, line in enumerate(stream, 1):
    line = line.strip()
    if not line or line.startswith('#'):
      continue
    parts = line.split(None, 1)
    if len(parts) != 2:
      raise ParseError('Line %d: expected "<max-revision> <path>", got %r'
                       % (lineno, line))
    try:
      max_rev = int(parts[0])
    except ValueError:
      raise ParseError('Line %d: bad revision number %r' % (lineno, parts[0]))
    if max_rev < 0:
      raise ParseError('Line %d: revision cannot be negative' % lineno)
    extras.Add(parts[1], max_rev)
  LOGGER.debug('Found %d extra paths', len(extras))
  return extras
