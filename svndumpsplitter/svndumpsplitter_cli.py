#!/usr/bin/env python3

# Copyright 2013 Google Inc. All Rights Reserved.
#
# Use of this source code is governed by a MIT-style
# license that can be found in the LICENSE file or at
# http://opensource.org/licenses/MIT

"""Split one module out of an SVN dump file.

This script reads a full-history SVN dump file of a repository using the
trunk/branches/tags layout with one directory per module underneath, and
writes a dump file to stdout that only contains the history of one module.
The result can be loaded with 'svnadmin load' and then fed to an import tool
such as svn-all-fast-export.

Relevant revisions:
  A revision is kept if it is revision 0, if it creates trunk, branches or
  tags, if it creates, replaces or deletes a branch or a tag, if it touches
  trunk/<module>, branches/<branch>/<module> or tags/<tag>/<module>, or if it
  touches an extra path (see --extra). Only the nodes of a kept revision that
  are relevant themselves are written. Kept revisions are renumbered so that
  the output has no gaps, and their order is never changed.

Copy operations:
  Every Node-copyfrom-rev is rewritten to point at the output revision that
  last touched the copy source (or the closest parent directory of it) at or
  before the original copy source revision. Copies from other modules are
  reported as warnings since their contents are not in the output.

Extra paths (--extra):
  The extras file lists paths outside of the module that should be kept
  anyway, each with the last input revision in which they are kept:

    # max-revision path
    1500 docs/README
    2000 common/Makefile

  Missing parent directories of extra paths are created as needed. If an extra
  path first shows up as a change (for instance because its directory was
  renamed), it is written as an add, cutting off its earlier history.

Limitations:
  Input revisions must start at 0 and be consecutive, so incremental dumps
  cannot be split. The dump format version must be 2 (no deltas).
"""

import argparse
import logging
import re
import sys

from svndumpsplitter import extras as extras_lib
from svndumpsplitter import revtree
from svndumpsplitter import svndump
from svndumpsplitter import util

LOGGER = logging.getLogger('svndumpsplitter' if __name__ == '__main__'
                           else __name__)

# Log progress every this many input revisions
PROGRESS_INTERVAL = 1000


class Revision(object):
  """A revision read from the dump and the nodes kept from it.

  Attributes:
    record: the Revision-number svndump.Record
    num: input revision number
    outnum: output revision number, None until the revision is written
    relevant: True if the revision must be written
    dropped: True if the revision was relevant but had nothing to write
    nodes: svndump.Nodes kept from this revision, in dump order
  """

  def __init__(self, record):
    self.record = record
    try:
      self.num = int(record.value)
    except ValueError:
      raise svndump.FormatError('Bad revision number in %r' % record)
    self.outnum = None
    self.relevant = False
    self.dropped = False
    self.nodes = []

  @property
  def emitted(self):
    return self.outnum is not None

  def __repr__(self):
    return 'Rev %s<%d> - %d nodes' % (self.outnum, self.num, len(self.nodes))


class Splitter(object):
  """Split one module out of an SVN dump, one revision at a time.

  A Splitter holds the state of a single run: the index of relevant paths,
  the revision map, and which extra paths were created. Do not reuse it for
  another dump.
  """

  def __init__(self,
               paths,
               input_stream,
               output_stream,
               extras=None,
               debug_trace=False):
    """Create a new Splitter.

    Args:
      paths: util.ModuleFilter deciding which nodes are relevant
      input_stream: a seekable binary file-like object to read the dump from
      output_stream: a binary file-like object to write the result to
      extras: an extras.ExtraPaths, or None for no extra paths
      debug_trace: if True, write '#' comment lines explaining decisions to
                   the output (which makes it unusable for svnadmin load)
    """
    self.paths = paths
    self.reader = svndump.DumpReader(input_stream)
    self.output_stream = output_stream
    self.extras = extras if extras is not None else extras_lib.ExtraPaths()
    self.debug_trace = debug_trace
    self.index = revtree.RelevancePathIndex()
    self.revmap = {}
    self.revisions_read = 0

  def Split(self):
    """Split the entire dump file in input_stream.

    Raises:
      svndump.FormatError: if the dump file is malformed
      revtree.ConsistencyError: if the history cannot be split consistently
    """
    self._CopyDumpHeader()

    revision = None
    while True:
      record = svndump.ReadRecord(self.reader)
      if record is None:
        break
      if record.type == 'Revision-number':
        if revision is not None:
          self._Finalize(revision)
        revision = self._StartRevision(record)
      elif record.type == 'Node-path':
        if revision is None:
          raise svndump.FormatError('%r precedes the first revision' % record)
        self._ProcessNode(revision, svndump.Node(record))
      else:
        LOGGER.warning('Unknown record type %s at %#010x', record.type,
                       record.start)
    if revision is not None:
      self._Finalize(revision)
    LOGGER.info('Wrote %d of %d revisions', len(self.revmap),
                self.revisions_read)

  def _CopyDumpHeader(self):
    """Check the format version and UUID records and pass them through."""
    version = svndump.ReadRecord(self.reader)
    if version is None or version.type != 'SVN-fs-dump-format-version':
      raise svndump.FormatError('Missing dump format version')
    if version.value != '2':
      raise svndump.FormatError('Unsupported dump format version %r'
                                % version.value)
    uuid = svndump.ReadRecord(self.reader)
    if uuid is None or uuid.type != 'UUID':
      raise svndump.FormatError('Missing UUID')
    version.Write(self.output_stream)
    uuid.Write(self.output_stream)

  def _StartRevision(self, record):
    revision = Revision(record)
    if revision.num != self.revisions_read:
      raise revtree.ConsistencyError('Have r%d, expecting r%d'
                                     % (revision.num, self.revisions_read))
    self.revisions_read += 1
    if revision.num == 0:
      revision.relevant = True
    if revision.num % PROGRESS_INTERVAL == 0:
      LOGGER.info('Reading r%d', revision.num)
    return revision

  def _ProcessNode(self, revision, node):
    """Keep a node in its revision if it is relevant."""
    interest = self.paths.Classify(node, revision.num)
    if interest == util.ModuleFilter.IRRELEVANT:
      return
    revision.relevant = True
    if interest == util.ModuleFilter.TOP_LEVEL_ROOT:
      self._Trace('%d creates %r', revision.num, node.path)
    else:
      self._Trace('%d is relevant for %r', revision.num, node.path)
    if node.kind == 'dir' and node.action in ('add', 'replace'):
      self.index.Add(node.path, revision)
    self._CheckForeignCopy(revision, node)
    revision.nodes.append(node)

  def _CheckForeignCopy(self, revision, node):
    """Warn about copies from other modules; their sources are not kept."""
    path = node.copyfrom_path
    if path is None or path in self.extras:
      return
    module = self.paths.ModuleOf(path)
    if module is not None and not self.paths.IsModulePath(path):
      LOGGER.warning('r%d copies %s from module %s: %s@%s', revision.num,
                     node.path, module, path, node.copyfrom_rev)

  def _Finalize(self, revision):
    """Write revision, writing unwritten revisions it depends on first.

    Args:
      revision: a Revision whose nodes have all been read

    Raises:
      revtree.ConsistencyError: if a dependency cannot be resolved

    Dependencies can be arbitrarily deep, so an explicit stack is used
    instead of recursion.
    """
    stack = [revision]
    while stack:
      current = stack[-1]
      dependency = self._PendingDependency(current)
      if dependency is None:
        stack.pop()
        self._Emit(current)
        continue
      if dependency in stack:
        raise revtree.ConsistencyError('r%d and r%d depend on each other'
                                       % (current.num, dependency.num))
      if dependency.dropped or (not dependency.nodes and dependency.num > 0):
        raise revtree.ConsistencyError('r%d depends on r%d which has nothing'
                                       ' to write' % (current.num,
                                                      dependency.num))
      self._Trace('r%d needs r%d first', current.num, dependency.num)
      dependency.relevant = True
      stack.append(dependency)

  def _Lookups(self, revision):
    """Yield (path, upper_bound) for every lookup revision's nodes need."""
    for node in revision.nodes:
      if node.action == 'delete':
        continue
      if util.NormPath(node.path) not in util.TOP_LEVEL_DIRS:
        yield util.Dirname(util.NormPath(node.path)), None
      if node.copyfrom_path is not None:
        yield node.copyfrom_path, node.copyfrom_rev

  def _PendingDependency(self, revision):
    """Return the first unwritten revision that revision depends on, or None.

    Raises:
      revtree.ConsistencyError: if a lookup finds nothing at all
    """
    if revision.emitted or not revision.relevant:
      return None
    if not revision.nodes:
      return None
    for path, upper_bound in self._Lookups(revision):
      ancestor, _ = self.index.FindAncestor(path, upper_bound, revision)
      if not ancestor.emitted:
        return ancestor
    return None

  def _FindWrittenAncestor(self, path, upper_bound, revision):
    ancestor, matched_path = self.index.FindAncestor(path, upper_bound,
                                                     revision)
    self._Trace('%r - last relevant -> %r at %r', path, ancestor,
                matched_path)
    if not ancestor.emitted:
      raise revtree.ConsistencyError('r%d was not written before r%d'
                                     % (ancestor.num, revision.num))
    return ancestor, matched_path

  def _Emit(self, revision):
    """Rewrite and write a revision whose dependencies are all written."""
    if revision.emitted or not revision.relevant:
      return
    # svnadmin: Malformed dumpstream: Revision 0 must not contain node records
    # so only revision 0 may be written without nodes.
    if not revision.nodes and revision.num > 0:
      LOGGER.debug('Dropping r%d: no nodes left', revision.num)
      revision.dropped = True
      return

    self._Trace('process_and_write %r', revision)
    synthetic_nodes = []
    for node in revision.nodes:
      if node.action == 'delete':
        continue
      path = util.NormPath(node.path)
      if path not in util.TOP_LEVEL_DIRS:
        container = util.Dirname(path)
        _, matched_path = self._FindWrittenAncestor(container, None, revision)
        if path in self.extras and matched_path != container:
          synthetic_nodes.extend(
              self._MissingDirectories(matched_path, container))
      if path in self.extras and self.extras.Materialize(path):
        # The extra path may show up as a change if it was created elsewhere
        # and its directory renamed since. History is cut here instead of
        # following the rename.
        if node.action == 'change':
          LOGGER.info('Cutting history of %s at r%d', path, revision.num)
          node.action = 'add'
      if node.copyfrom_path is not None:
        ancestor, _ = self._FindWrittenAncestor(
            node.copyfrom_path, node.copyfrom_rev, revision)
        self._Trace('Node-copyfrom-rev %d -> %d<%d>', node.copyfrom_rev,
                    ancestor.outnum, ancestor.num)
        node.copyfrom_rev = ancestor.outnum

    self._WriteRevision(revision)
    for node in synthetic_nodes:
      node.Write(self.output_stream)
    for node in revision.nodes:
      node.Write(self.output_stream)
      self.index.Register(node.path, revision)
    if not revision.nodes:
      self.index.Add(util.ROOT, revision)

  def _MissingDirectories(self, matched_path, container):
    """Create the directories between matched_path and container.

    Args:
      matched_path: the closest existing ancestor directory
      container: the directory that should contain an extra path

    Returns:
      a list of svndump.SyntheticNodes, parents first, skipping directories
      that were already created

    Raises:
      revtree.ConsistencyError: if matched_path is not an ancestor of container
    """
    missing = []
    path = container
    while path != matched_path:
      if path == util.ROOT:
        raise revtree.ConsistencyError(
            "Couldn't find missing directories: %r is not a parent of %r"
            ' (missing %r)' % (matched_path, container, missing))
      missing.append(path)
      path = util.Dirname(path)
    nodes = []
    for path in reversed(missing):
      if self.extras.Materialize(path):
        self._Trace('Create %s', path)
        nodes.append(svndump.SyntheticNode(path))
    return nodes

  def _WriteRevision(self, revision):
    """Assign the next output number to revision and write its record."""
    revision.outnum = len(self.revmap)
    self.revmap[revision.num] = revision.outnum
    self._Trace('Revision %d<%d>', revision.outnum, revision.num)
    revision.record.Set('Revision-number', revision.outnum)
    revision.record.Write(self.output_stream)

  def _Trace(self, msg, *args):
    if self.debug_trace:
      self.output_stream.write(('# %s\n' % (msg % args)).encode(
          'utf-8', 'surrogateescape'))


class _ArgumentParser(argparse.ArgumentParser):
  """ArgumentParser exiting with status 1 on usage errors."""

  def error(self, message):
    self.print_usage(sys.stderr)
    self.exit(1, '%s: error: %s\n' % (self.prog, message))


def main(argv):
  """Split a module out of an SVN dump file.

  Args:
    argv: a list of flags passed to the script (but not argv[0])

  Returns:
    the exit status

  See module docstring for documentation on splitting.
  """
  parser = _ArgumentParser(epilog=__doc__,
                           formatter_class=(
                               argparse.RawDescriptionHelpFormatter))
  parser.add_argument('dumpfile',
                      help='SVN dump file (format version 2) to split.')
  parser.add_argument('filter',
                      help='Module to keep: a regular expression matching'
                      ' the directory name under trunk, branches/<branch>'
                      ' and tags/<tag>.')
  parser.add_argument('--extra',
                      type=argparse.FileType('r'),
                      metavar='FILE',
                      help='File listing extra paths to keep. Format is one'
                      ' path per line: MAX-REVISION PATH.')
  parser.add_argument('--debug', action='store_true',
                      help='Log verbosely to stderr and add "#" comments to'
                      ' the output explaining what happens. This makes the'
                      ' output unusable for svnadmin load.')
  parser.add_argument('--quiet', action='store_true',
                      help='Do not report progress.')

  options = parser.parse_args(argv)

  if options.debug:
    logging.basicConfig(level=logging.DEBUG)
  elif options.quiet:
    logging.basicConfig(level=logging.WARNING)
  else:
    logging.basicConfig(level=logging.INFO)
  LOGGER.debug('Debug ON')

  if options.extra:
    try:
      extras = extras_lib.ParseExtrasFile(options.extra)
    except extras_lib.ParseError as e:
      parser.print_usage(sys.stderr)
      LOGGER.error('Bad extras file %s: %s', options.extra.name, e)
      return 1
    finally:
      options.extra.close()
  else:
    extras = None

  try:
    paths = util.ModuleFilter(options.filter, extras)
  except re.error as e:
    parser.print_usage(sys.stderr)
    LOGGER.error('Bad filter %r: %s', options.filter, e)
    return 1

  try:
    with open(options.dumpfile, 'rb') as input_stream:
      splitter = Splitter(paths,
                          input_stream,
                          sys.stdout.buffer,
                          extras=extras,
                          debug_trace=options.debug)
      splitter.Split()
  except IOError as e:
    LOGGER.error('Cannot read %s: %s', options.dumpfile, e)
    return 1
  except (svndump.Error, revtree.Error) as e:
    LOGGER.error('%s', e)
    return 1
  finally:
    sys.stdout.flush()
  return 0


def Run():
  sys.exit(main(sys.argv[1:]))


if __name__ == '__main__':
  Run()
