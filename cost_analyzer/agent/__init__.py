"""Model clients, tool adapters and the analysis pipeline"""
