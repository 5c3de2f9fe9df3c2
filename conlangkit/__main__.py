#!/usr/bin/env python
# coding=utf-8

"""Run the conlangkit command line interface."""

from .conlangkit import main

main(prog_name="conlangkit")
