#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Units that operate on the packed streams of resource files.
"""
