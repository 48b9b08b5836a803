# -*- coding: utf-8 -*-
"""Records domain: the authoritative store, its HTTP routes and the month projection."""
