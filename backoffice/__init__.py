"""Administrative backend: contract document generation and lifecycle"""
