# -*- coding: utf-8 -*-
"""MilkyWay — daily drink log with a local-first record cache.

`milkyway.api` serves the Record Store; `milkyway.client` keeps a local mirror
of it and syncs optimistic writes in the background.
"""
