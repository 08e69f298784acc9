"""Intcode VM: word memory and program loading."""
