#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Units that read and write LookingGlass resource files.
"""
