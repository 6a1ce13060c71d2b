"""Document table grid recovery.

Rectifies a photographed document containing a ruled table with OpenCV,
recovers the row/column cell boxes of that table, and optionally reads
the text of selected cells with Tesseract OCR.
"""
