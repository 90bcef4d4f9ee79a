# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - sqlite3 storage
"""


import zlib
from io import BytesIO
from sqlite3 import connect, Row

from gitwiki.storage import MutableStorageBase, BytesMutableStorageBase, FileMutableStorageBase


class _Storage(MutableStorageBase):
    """
    A simple sqlite3 based storage.
    """
    def __init__(self, db_name, table_name, compression_level=0):
        """
        :param db_name: database (file) name
        :param table_name: table to use (multiple storages may share the same database)
        :param compression_level: zlib level for stored values, 0 means no compression
        """
        self.db_name = db_name
        self.table_name = table_name
        self.compression_level = compression_level
        self.conn = None

    def create(self):
        conn = connect(self.db_name)
        with conn:
            conn.execute('create table %s (key text primary key, value blob)' % self.table_name)
        conn.close()

    def destroy(self):
        conn = connect(self.db_name)
        with conn:
            conn.execute('drop table %s' % self.table_name)
        conn.close()

    def open(self):
        # readers run in other threads than the writer
        self.conn = connect(self.db_name, check_same_thread=False)
        self.conn.row_factory = Row # make column access by ['colname'] possible

    def close(self):
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _compress(self, value):
        if self.compression_level:
            value = zlib.compress(value, self.compression_level)
        return value

    def _decompress(self, value):
        if self.compression_level:
            value = zlib.decompress(value)
        return bytes(value)

    def _get(self, key):
        rows = list(self.conn.execute("select value from %s where key=?" % self.table_name, (key, )))
        if not rows:
            raise KeyError(key)
        return self._decompress(rows[0]['value'])

    def _set(self, key, value):
        with self.conn:
            self.conn.execute('insert or replace into %s values (?, ?)' % self.table_name,
                              (key, self._compress(value)))

    def __iter__(self):
        for row in self.conn.execute("select key from %s" % self.table_name):
            yield row["key"]

    def __contains__(self, key):
        # no need to fetch (and decompress) the value
        rows = self.conn.execute("select 1 from %s where key=?" % self.table_name, (key, )).fetchall()
        return bool(rows)

    def __len__(self):
        return self.conn.execute("select count(*) from %s" % self.table_name).fetchone()[0]

    def __delitem__(self, key):
        with self.conn:
            cursor = self.conn.execute('delete from %s where key=?' % self.table_name, (key, ))
        if not cursor.rowcount:
            raise KeyError(key)


class BytesStorage(_Storage, BytesMutableStorageBase):
    def __getitem__(self, key):
        return self._get(key)

    def __setitem__(self, key, value):
        self._set(key, value)


class FileStorage(_Storage, FileMutableStorageBase):
    def __getitem__(self, key):
        return BytesIO(self._get(key))

    def __setitem__(self, key, stream):
        try:
            self._set(key, stream.read())
        finally:
            stream.close()
