#!/usr/bin/env python3

"""Utility helpers for the guide selection pipeline."""
