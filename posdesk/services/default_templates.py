"""Built-in printable templates shipped with every organization."""

from __future__ import annotations

from typing import Dict, List

from posdesk.schemas.templates import Template

RECEIPT_THERMAL_ENGLISH = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Receipt</title>
  <style>
    body { font-family: monospace; font-size: 12px; width: 72mm; margin: 0; }
    .header, .footer { text-align: center; }
    .line { display: flex; justify-content: space-between; }
    .total { font-weight: bold; border-top: 1px solid #000; padding-top: 4px; }
    table { width: 100%; border-collapse: collapse; }
    th { text-align: left; border-bottom: 1px solid #000; }
    .amount { text-align: right; }
  </style>
</head>
<body>
  {{#customHeader}}<div class="header"><strong>{{customHeader}}</strong></div>{{/customHeader}}
  <div class="header">
    {{#companyLogo}}<img src="{{companyLogo}}" alt="Logo" style="max-width: 90%;" />{{/companyLogo}}
    <h2>{{companyName}}</h2>
    <p>{{companyAddress}}</p>
    {{#companyPhone}}<p>Tel: {{companyPhone}}</p>{{/companyPhone}}
    {{#companyVat}}<p>VAT: {{companyVat}}</p>{{/companyVat}}
    <hr>
    <p>Order #: {{orderNumber}}</p>
    {{#orderType}}<p>Type: {{orderType}}</p>{{/orderType}}
    <p>Date: {{orderDate}}</p>
    {{#tableName}}<p>Table: {{tableName}}</p>{{/tableName}}
    {{#customerName}}<p>Customer: {{customerName}}</p>{{/customerName}}
  </div>
  <table>
    <thead><tr><th>Item</th><th>Qty</th><th class="amount">Amount</th></tr></thead>
    <tbody>
      {{#each items}}
      <tr><td>{{name}}</td><td>{{quantity}}</td><td class="amount">{{total}}</td></tr>
      {{/each}}
    </tbody>
  </table>
  <div class="line"><span>Items:</span><span>{{totalQty}}</span></div>
  <div class="line"><span>Subtotal:</span><span>{{subtotal}}</span></div>
  <div class="line"><span>VAT ({{taxRate}}%):</span><span>{{taxAmount}}</span></div>
  <div class="line total"><span>Total:</span><span>{{total}} {{currency}}</span></div>
  {{#hasPayments}}
  <table>
    <thead><tr><th>Paid by</th><th class="amount">Amount</th></tr></thead>
    <tbody>
      {{#each payments}}
      <tr><td>{{paymentType}}</td><td class="amount">{{amount}}</td></tr>
      {{/each}}
    </tbody>
  </table>
  {{/hasPayments}}
  {{#customFooter}}<div class="footer"><em>{{customFooter}}</em></div>{{/customFooter}}
  <div class="footer">
    <p>Thank you for your visit!</p>
    {{#includeQR}}<img class="qr" src="{{qrCodeUrl}}" alt="ZATCA QR" width="120" height="120" />{{/includeQR}}
  </div>
</body>
</html>
"""

RECEIPT_THERMAL_ARABIC = """<!DOCTYPE html>
<html dir="rtl" lang="ar">
<head>
  <meta charset="utf-8">
  <title>إيصال</title>
  <style>
    body { font-family: Tahoma, monospace; font-size: 12px; width: 72mm; margin: 0; direction: rtl; text-align: right; }
    .header, .footer { text-align: center; }
    .line { display: flex; justify-content: space-between; }
    .total { font-weight: bold; border-top: 1px solid #000; padding-top: 4px; }
    table { width: 100%; border-collapse: collapse; }
    th { text-align: right; border-bottom: 1px solid #000; }
  </style>
</head>
<body>
  <div class="header">
    <h2>{{companyNameAr}}</h2>
    <p>{{companyName}}</p>
    <p>{{companyAddress}}</p>
    {{#companyVat}}<p>الرقم الضريبي: {{companyVat}}</p>{{/companyVat}}
    <hr>
    <p>رقم الطلب: {{orderNumber}}</p>
    <p>التاريخ: {{orderDate}}</p>
    {{#tableName}}<p>الطاولة: {{tableName}}</p>{{/tableName}}
  </div>
  <table>
    <thead><tr><th>الصنف</th><th>الكمية</th><th>المبلغ</th></tr></thead>
    <tbody>
      {{#each items}}
      <tr><td>{{name}}</td><td>{{quantity}}</td><td>{{total}}</td></tr>
      {{/each}}
    </tbody>
  </table>
  <div class="line"><span>المجموع الفرعي:</span><span>{{subtotal}}</span></div>
  <div class="line"><span>ضريبة القيمة المضافة ({{taxRate}}%):</span><span>{{taxAmount}}</span></div>
  <div class="line total"><span>الإجمالي:</span><span>{{total}} {{currency}}</span></div>
  {{#each payments}}
  <div class="line"><span>{{paymentType}}</span><span>{{amount}}</span></div>
  {{/each}}
  <div class="footer">
    <p>شكراً لزيارتكم</p>
    {{#includeQR}}<img class="qr" src="{{qrCodeUrl}}" alt="ZATCA QR" width="120" height="120" />{{/includeQR}}
  </div>
</body>
</html>
"""

INVOICE_A4_ENGLISH = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Invoice {{invoiceId}}</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 20mm; color: #222; }
    .top { display: flex; justify-content: space-between; }
    .title { font-size: 28px; font-weight: bold; }
    table { width: 100%; border-collapse: collapse; margin-top: 16px; }
    th, td { border: 1px solid #ccc; padding: 6px; text-align: left; }
    th { background: #f0f0f0; }
    .amount { text-align: right; }
    .summary { width: 40%; margin-left: auto; }
  </style>
</head>
<body>
  <div class="top">
    <div>
      {{#companyLogo}}<img src="{{companyLogo}}" alt="Logo" style="max-height: 80px;" />{{/companyLogo}}
      <h2>{{companyName}}</h2>
      <p>{{companyAddress}}</p>
      <p>{{companyEmail}} {{companyPhone}}</p>
      {{#companyVat}}<p>VAT No: {{companyVat}}</p>{{/companyVat}}
    </div>
    <div>
      <div class="title">INVOICE</div>
      <p>No: {{invoiceId}}</p>
      <p>Date: {{invoiceDate}}</p>
      <p>Due: {{dueDate}}</p>
      <p>Status: {{status}}</p>
    </div>
  </div>
  <h3>Bill to</h3>
  <p>{{clientName}}</p>
  {{#clientAddress}}<p>{{clientAddress}}</p>{{/clientAddress}}
  {{#clientEmail}}<p>{{clientEmail}}</p>{{/clientEmail}}
  {{#clientVat}}<p>VAT No: {{clientVat}}</p>{{/clientVat}}
  <table>
    <thead>
      <tr><th>Item</th><th>Description</th><th>Qty</th><th class="amount">Unit price</th><th class="amount">VAT per unit</th><th class="amount">Total</th></tr>
    </thead>
    <tbody>
      {{#each items}}
      <tr><td>{{name}}</td><td>{{description}}</td><td>{{quantity}}</td><td class="amount">{{unitPrice}}</td><td class="amount">{{unitVat}}</td><td class="amount">{{total}}</td></tr>
      {{/each}}
    </tbody>
  </table>
  <table class="summary">
    <tr><td>Subtotal</td><td class="amount">{{subtotal}}</td></tr>
    <tr><td>VAT ({{taxRate}}%)</td><td class="amount">{{taxAmount}}</td></tr>
    <tr><th>Total</th><th class="amount">{{total}} {{currency}}</th></tr>
    {{#hasPayments}}
    <tr><td>Paid</td><td class="amount">{{amountPaid}}</td></tr>
    <tr><th>Balance due</th><th class="amount">{{balanceDue}}</th></tr>
    {{#isOverpaid}}<tr><td>Overpaid</td><td class="amount">{{overpaid}}</td></tr>{{/isOverpaid}}
    {{/hasPayments}}
  </table>
  {{#notes}}<h4>Notes</h4><p>{{notes}}</p>{{/notes}}
  {{#includeQR}}<img class="qr" src="{{qrCodeUrl}}" alt="ZATCA QR" width="120" height="120" />{{/includeQR}}
</body>
</html>
"""

QUOTE_A4_ENGLISH = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Quote {{quoteId}}</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 20mm; color: #222; }
    table { width: 100%; border-collapse: collapse; margin-top: 16px; }
    th, td { border: 1px solid #ccc; padding: 6px; text-align: left; }
    .amount { text-align: right; }
  </style>
</head>
<body>
  <h2>{{companyName}}</h2>
  <p>{{companyAddress}}</p>
  <h1>QUOTATION</h1>
  <p>No: {{quoteId}}</p>
  <p>Date: {{quoteDate}}</p>
  {{#validUntil}}<p>Valid until: {{validUntil}}</p>{{/validUntil}}
  <h3>Prepared for</h3>
  <p>{{clientName}}</p>
  {{#clientEmail}}<p>{{clientEmail}}</p>{{/clientEmail}}
  <table>
    <thead><tr><th>Item</th><th>Qty</th><th class="amount">Unit price</th><th class="amount">Total</th></tr></thead>
    <tbody>
      {{#each items}}
      <tr><td>{{name}}</td><td>{{quantity}}</td><td class="amount">{{unitPrice}}</td><td class="amount">{{total}}</td></tr>
      {{/each}}
    </tbody>
  </table>
  <p>Subtotal: {{subtotal}}</p>
  <p>VAT ({{taxRate}}%): {{taxAmount}}</p>
  <p><strong>Total: {{total}} {{currency}}</strong></p>
  {{#notes}}<p>{{notes}}</p>{{/notes}}
</body>
</html>
"""

BUILT_IN_TEMPLATES: List[Template] = [
    Template(
        id="receipt-thermal-en",
        category="receipt",
        type="english_thermal",
        name="Thermal receipt (English)",
        content=RECEIPT_THERMAL_ENGLISH,
        is_default=True,
        built_in=True,
    ),
    Template(
        id="receipt-thermal-ar",
        category="receipt",
        type="arabic_thermal",
        name="Thermal receipt (Arabic)",
        content=RECEIPT_THERMAL_ARABIC,
        is_default=True,
        built_in=True,
    ),
    Template(
        id="sales-invoice-english",
        category="invoice",
        type="english_a4",
        name="Sales invoice (English)",
        content=INVOICE_A4_ENGLISH,
        is_default=True,
        built_in=True,
    ),
    Template(
        id="quote-english",
        category="quote",
        type="english_a4",
        name="Quote (English)",
        content=QUOTE_A4_ENGLISH,
        is_default=True,
        built_in=True,
    ),
]

BUILT_IN_BY_ID: Dict[str, Template] = {template.id: template for template in BUILT_IN_TEMPLATES}

# Older template ids still referenced by stored invoices.
LEGACY_TEMPLATE_IDS: Dict[str, str] = {
    "default-invoice-english": "sales-invoice-english",
    "english-invoice": "sales-invoice-english",
    "default-receipt-thermal": "receipt-thermal-en",
    "default-quote-english": "quote-english",
}
