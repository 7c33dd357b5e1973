# Copyright 2013 Google Inc. All Rights Reserved.
#
# Use of this source code is governed by a MIT-style
# license that can be found in the LICENSE file or at
# http://opensource.org/licenses/MIT

"""Tests for util."""

import collections
import unittest

from svndumpsplitter import extras
from svndumpsplitter import util

_Node = collections.namedtuple('_Node', ('path', 'kind', 'action'))


class PathHelpersTest(unittest.TestCase):
  def testNormPath(self):
    self.assertEqual(util.NormPath('/trunk/foo/'), 'trunk/foo')

  def testDirname(self):
    self.assertEqual(util.Dirname('trunk/foo/bar'), 'trunk/foo')
    self.assertEqual(util.Dirname('trunk'), util.ROOT)
    self.assertEqual(util.Dirname(util.ROOT), util.ROOT)

  def testAncestors(self):
    self.assertEqual(list(util.Ancestors('trunk/foo/bar')),
                     ['trunk/foo/bar', 'trunk/foo', 'trunk', ''])

  def testAncestorsOfRoot(self):
    self.assertEqual(list(util.Ancestors('')), [''])

  def testAncestorsNormalizes(self):
    self.assertEqual(list(util.Ancestors('/trunk/')), ['trunk', ''])


class ModuleFilterClassifyTest(unittest.TestCase):
  def setUp(self):
    self.filter = util.ModuleFilter(
        'foo', extras.ExtraPaths({'docs/readme': 5}))

  def Check(self, expected, path, kind, action, revision_number=1):
    self.assertEqual(
        self.filter.Classify(_Node(path, kind, action), revision_number),
        expected, path)

  def testTopLevelRoots(self):
    for path in ('trunk', 'branches', 'tags'):
      self.Check(util.ModuleFilter.TOP_LEVEL_ROOT, path, 'dir', 'add')

  def testTopLevelRootChange(self):
    self.Check(util.ModuleFilter.IRRELEVANT, 'trunk', 'dir', 'change')

  def testBranchAndTagRoots(self):
    self.Check(util.ModuleFilter.MODULE, 'branches/v1', 'dir', 'add')
    self.Check(util.ModuleFilter.MODULE, 'tags/1.0', 'dir', 'add')

  def testBranchAndTagRootDelete(self):
    self.Check(util.ModuleFilter.MODULE, 'branches/v1', None, 'delete')
    self.Check(util.ModuleFilter.MODULE, 'tags/1.0', None, 'delete')

  def testBranchAndTagRootReplace(self):
    self.Check(util.ModuleFilter.MODULE, 'branches/v1', 'dir', 'replace')
    self.Check(util.ModuleFilter.MODULE, 'tags/1.0', 'dir', 'replace')

  def testBranchRootChange(self):
    self.Check(util.ModuleFilter.IRRELEVANT, 'branches/v1', 'dir', 'change')

  def testTopLevelRootDelete(self):
    self.Check(util.ModuleFilter.IRRELEVANT, 'tags', None, 'delete')

  def testModuleDirectories(self):
    self.Check(util.ModuleFilter.MODULE, 'trunk/foo', 'dir', 'add')
    self.Check(util.ModuleFilter.MODULE, 'branches/v1/foo', 'dir', 'add')
    self.Check(util.ModuleFilter.MODULE, 'tags/1.0/foo', 'dir', 'add')

  def testInsideModule(self):
    self.Check(util.ModuleFilter.MODULE, 'trunk/foo/a.c', 'file', 'change')
    self.Check(util.ModuleFilter.MODULE, 'branches/v1/foo/src', 'dir', 'add')
    self.Check(util.ModuleFilter.MODULE, 'trunk/foo/a.c', None, 'delete')

  def testOtherModules(self):
    self.Check(util.ModuleFilter.IRRELEVANT, 'trunk/bar', 'dir', 'add')
    self.Check(util.ModuleFilter.IRRELEVANT, 'trunk/bar/foo', 'dir', 'add')
    self.Check(util.ModuleFilter.IRRELEVANT, 'trunk/foobar', 'dir', 'add')
    self.Check(util.ModuleFilter.IRRELEVANT, 'branches/foo', 'file',
               'change')

  def testOutsideLayout(self):
    self.Check(util.ModuleFilter.IRRELEVANT, 'foo', 'dir', 'add')
    self.Check(util.ModuleFilter.IRRELEVANT, 'docs/foo/x', 'file', 'add')

  def testExtraPathWithinBound(self):
    self.Check(util.ModuleFilter.EXTRA, 'docs/readme', 'file', 'change', 5)

  def testExtraPathPastBound(self):
    self.Check(util.ModuleFilter.IRRELEVANT, 'docs/readme', 'file',
               'change', 6)

  def testRegexpModule(self):
    self.filter = util.ModuleFilter('fo+|bar')
    self.Check(util.ModuleFilter.MODULE, 'trunk/foooo/x', 'file', 'add')
    self.Check(util.ModuleFilter.MODULE, 'trunk/bar', 'dir', 'add')
    self.Check(util.ModuleFilter.IRRELEVANT, 'trunk/foobar', 'dir', 'add')

  def testNoExtras(self):
    self.filter = util.ModuleFilter('foo')
    self.Check(util.ModuleFilter.IRRELEVANT, 'docs/readme', 'file', 'add')


class ModuleFilterModuleOfTest(unittest.TestCase):
  def setUp(self):
    self.filter = util.ModuleFilter('foo')

  def testTrunk(self):
    self.assertEqual(self.filter.ModuleOf('trunk/bar/x.c'), 'bar')

  def testBranch(self):
    self.assertEqual(self.filter.ModuleOf('/branches/v1/bar'), 'bar')

  def testTag(self):
    self.assertEqual(self.filter.ModuleOf('tags/1.0/foo/y'), 'foo')

  def testTooShort(self):
    self.assertIsNone(self.filter.ModuleOf('trunk'))
    self.assertIsNone(self.filter.ModuleOf('branches/v1'))

  def testOutsideLayout(self):
    self.assertIsNone(self.filter.ModuleOf('docs/x'))

  def testIsModulePath(self):
    self.assertTrue(self.filter.IsModulePath('trunk/foo'))
    self.assertTrue(self.filter.IsModulePath('tags/1.0/foo/bar'))
    self.assertFalse(self.filter.IsModulePath('trunk/bar/foo'))


if __name__ == '__main__':
  unittest.main()
