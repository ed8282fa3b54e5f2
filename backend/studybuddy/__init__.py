"""Study Buddy: JEE tutoring backend."""
