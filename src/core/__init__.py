"""
Core domain models, fixed-point math, and contract validation.

Не зависит от модулей treasury: только типы, единицы и арифметика.
"""
