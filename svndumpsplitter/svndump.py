# Copyright 2013 Google Inc. All Rights Reserved.
#
# Use of this source code is governed by a MIT-style
# license that can be found in the LICENSE file or at
# http://opensource.org/licenses/MIT

"""Utilities for parsing and replaying SVN dump files.

http://svn.apache.org/repos/asf/subversion/trunk/notes/dump-load-format.txt

Records are never read into memory as a whole. A Record remembers where its
headers and content live in the input file so it can be replayed byte-for-byte
later. Only records whose headers were modified are re-rendered.
"""

import logging
import os

LOGGER = logging.getLogger(__name__)

# Property block of a directory without properties
PROPS_END = b'PROPS-END\n'

_COPY_CHUNK_SIZE = 65536


class Error(Exception):
  """Parent class for this module's errors."""


class FormatError(Error):
  """The dump file does not follow the dump file format."""


class DumpReader(object):
  """Sequential reader over a seekable binary dump stream.

  Attributes:
    size: total size of the stream in bytes
    line_offset: offset of the start of the line returned by the last call to
                 ReadLine()
  """

  def __init__(self, stream):
    self._stream = stream
    self._stream.seek(0, os.SEEK_END)
    self.size = self._stream.tell()
    self._stream.seek(0)
    self.line_offset = 0

  def ReadLine(self):
    """Read one line (including its newline), or b'' at EOF."""
    self.line_offset = self._stream.tell()
    return self._stream.readline()

  def Tell(self):
    return self._stream.tell()

  def Skip(self, length):
    self._stream.seek(length, os.SEEK_CUR)

  def CopyRange(self, offset, length, sink):
    """Copy length bytes starting at offset to sink.

    Args:
      offset: absolute offset in the stream
      length: number of bytes to copy
      sink: a writeable binary file-like object

    Raises:
      FormatError: if the stream ends before length bytes were copied

    The reader's own position is restored afterwards.
    """
    if length <= 0:
      return
    old = self._stream.tell()
    self._stream.seek(offset)
    try:
      while length > 0:
        buf = self._stream.read(min(length, _COPY_CHUNK_SIZE))
        if not buf:
          raise FormatError('Unexpected EOF at %#010x' % self._stream.tell())
        sink.write(buf)
        length -= len(buf)
    finally:
      self._stream.seek(old)


class Record(object):
  """A record of RFC822-ish headers-plus-data from an SVN dump file.

  Attributes:
    headers: list of [key, value] pairs in file order (duplicates are kept)
    start: offset of the first header line
    content_start: offset of the first content byte
    content_length: value of the last Content-length header, or 0
    modified: True once a header was overwritten with Set()
  """

  def __init__(self, reader):
    self.reader = reader
    self.headers = []
    self.start = None
    self.content_start = None
    self.content_length = 0
    self.modified = False

  @property
  def type(self):
    """The first header key, which names the kind of Record."""
    return self.headers[0][0] if self.headers else None

  @property
  def value(self):
    return self.headers[0][1] if self.headers else None

  def Get(self, key, default=None):
    """Return the value of the last header named key."""
    for header_key, val in reversed(self.headers):
      if header_key == key:
        return val
    return default

  def Set(self, key, val):
    """Overwrite the last header named key, appending it if missing."""
    val = str(val)
    for header in reversed(self.headers):
      if header[0] == key:
        header[1] = val
        break
    else:
      self.headers.append([key, val])
    self.modified = True

  def ReadContent(self):
    """Return the content bytes of this Record."""
    out = _Buffer()
    self.reader.CopyRange(self.content_start, self.content_length, out)
    return b''.join(out)

  def Write(self, stream):
    """Write the Record to stream.

    Unmodified Records are copied verbatim from the input. Modified Records
    have their headers rendered again, then the content is copied. Records
    with a Content-length header get a blank line after the content.
    """
    if self.modified:
      for key, val in self.headers:
        stream.write(_Encode('%s: %s\n' % (key, val)))
      stream.write(b'\n')
      self.reader.CopyRange(self.content_start, self.content_length, stream)
    else:
      self.reader.CopyRange(self.start,
                            self.content_start + self.content_length
                            - self.start,
                            stream)
    if self.Get('Content-length') is not None:
      stream.write(b'\n')

  def __repr__(self):
    return 'Record(%s: %s @ %#010x)' % (self.type, self.value, self.start)


class _Buffer(list):
  """Minimal sink collecting written chunks."""

  def write(self, data):
    self.append(data)


def _Encode(text):
  return text.encode('utf-8', 'surrogateescape')


def _Decode(data):
  return data.decode('utf-8', 'surrogateescape')


def ReadRecord(reader):
  """Read a Record from the given DumpReader.

  Args:
    reader: a DumpReader

  Returns:
    a Record read from reader or None if EOF is reached

  Raises:
    FormatError: if Content-length is not a number or points past the end of
                 the stream

  The content of the Record is skipped; use Record.ReadContent() or
  Record.Write() to get at it.
  """
  record = Record(reader)
  while True:
    line = reader.ReadLine()
    if not line:  # EOF
      break
    line = line.rstrip(b'\n')
    if not line:
      if record.headers:
        break
      else:
        continue  # newline before headers is simply ignored
    if not record.headers:
      record.start = reader.line_offset
    key, sep, val = _Decode(line).partition(':')
    if not sep:
      LOGGER.error('Bad header line %r at %#010x', line, reader.line_offset)
      key, val = _Decode(line), ''
    elif val.startswith(' '):
      val = val[1:]
    record.headers.append([key, val])
  if not record.headers:
    # EOF is ok if no headers are found first
    return None

  record.content_start = reader.Tell()
  content_length = record.Get('Content-length', '0')
  try:
    record.content_length = int(content_length)
  except ValueError:
    raise FormatError('Bad Content-length %r in %r' % (content_length, record))
  if record.content_start + record.content_length > reader.size:
    raise FormatError('Content-length %d of %r exceeds the end of the dump'
                      % (record.content_length, record))
  reader.Skip(record.content_length)
  return record


class Node(object):
  """A Node-path Record seen as a change to one path.

  Attributes:
    record: the backing Record
    source: DUMP for Nodes read from the dump file, SYNTHETIC for Nodes made
            up by the splitter
  """
  DUMP = 0  # Node was read from the dump file being filtered
  SYNTHETIC = 1  # Node was created to bring a missing directory into existence

  source = DUMP

  def __init__(self, record):
    self.record = record

  @property
  def path(self):
    return self.record.value

  @property
  def kind(self):
    return self.record.Get('Node-kind')

  @property
  def action(self):
    return self.record.Get('Node-action')

  @action.setter
  def action(self, action):
    self.record.Set('Node-action', action)

  @property
  def copyfrom_path(self):
    return self.record.Get('Node-copyfrom-path')

  @property
  def copyfrom_rev(self):
    rev = self.record.Get('Node-copyfrom-rev')
    return None if rev is None else int(rev)

  @copyfrom_rev.setter
  def copyfrom_rev(self, rev):
    self.record.Set('Node-copyfrom-rev', rev)

  def Write(self, stream):
    self.record.Write(stream)

  def __repr__(self):
    return '<%s,%s> %s' % (self.action, self.kind, self.path)


class SyntheticNode(object):
  """A directory add that does not exist in the dump file."""

  source = Node.SYNTHETIC
  kind = 'dir'
  action = 'add'
  copyfrom_path = None
  copyfrom_rev = None

  def __init__(self, path):
    self.path = path

  def Write(self, stream):
    stream.write(_Encode('Node-path: %s\n'
                         'Node-kind: dir\n'
                         'Node-action: add\n'
                         'Prop-content-length: %d\n'
                         'Content-length: %d\n'
                         '\n' % (self.path, len(PROPS_END), len(PROPS_END))))
    stream.write(PROPS_END)
    stream.write(b'\n')

  def __repr__(self):
    return '<%s,%s> %s' % (self.action, self.kind, self.path)

  def __eq__(self, other):
    return isinstance(other, type(self)) and self.path == other.path
