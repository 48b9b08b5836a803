# -*- coding: utf-8 -*-
"""Photo recognition that pre-fills record fields. Optional; the record core never depends on it."""
