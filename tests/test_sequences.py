#!/usr/bin/env python
#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
import unittest

from xmlconform.sequences import ResultItem, ResultSequence, \
    ValidationError, ValidationResult


class ResultSequenceTest(unittest.TestCase):

    def test_result_item(self):
        item = ResultItem('atomic', '1', 'xs:integer')
        self.assertFalse(item.is_node)
        self.assertEqual(item.to_xml(), '1')

        item = ResultItem('element', 'alpha', name='a', xml='<a>alpha</a>')
        self.assertTrue(item.is_node)
        self.assertEqual(item.to_xml(), '<a>alpha</a>')

        item = ResultItem('text', 'a < b')
        self.assertTrue(item.is_node)
        self.assertEqual(item.to_xml(), 'a &lt; b')

    def test_result_item_equality(self):
        self.assertEqual(ResultItem('atomic', '1', 'xs:integer', raw=1),
                         ResultItem('atomic', '1', 'xs:integer', raw=1.0))
        self.assertNotEqual(ResultItem('atomic', '1', 'xs:integer'),
                            ResultItem('atomic', '1', 'xs:string'))

    def test_empty_sequence(self):
        seq = ResultSequence()
        self.assertTrue(seq.is_empty())
        self.assertEqual(len(seq), 0)
        self.assertEqual(seq.string_value(), '')
        self.assertEqual(seq.to_xml(), '')
        self.assertEqual(str(seq), '()')

    def test_sequence_from_strings(self):
        seq = ResultSequence.from_strings(['a', 'b', 'c'])
        self.assertFalse(seq.is_empty())
        self.assertEqual(len(seq), 3)
        self.assertListEqual(seq.values(), ['a', 'b', 'c'])
        self.assertEqual(seq[1], ResultItem('atomic', 'b', 'xs:string'))
        self.assertEqual(seq.string_value(), 'a b c')
        self.assertEqual(seq.string_value(sep=''), 'abc')
        self.assertEqual(str(seq), '(a, b, c)')
        self.assertListEqual([x.value for x in seq], ['a', 'b', 'c'])

        seq = ResultSequence.from_strings(['1'], type_name='xs:integer')
        self.assertEqual(seq[0].type_name, 'xs:integer')
        self.assertEqual(str(seq), '1')

    def test_validation_result(self):
        self.assertEqual(str(ValidationResult(True)), 'valid')
        self.assertEqual(str(ValidationResult(False)), 'invalid')

        errors = (ValidationError("not an xs:int", 3),
                  ValidationError("missing element"))
        result = ValidationResult(False, errors, version='1.1')
        self.assertEqual(str(result), 'invalid: line 3: not an xs:int')
        self.assertEqual(str(errors[1]), 'missing element')
        self.assertEqual(str(ValidationError("bad", 1, 5)), 'line 1, column 5: bad')


if __name__ == '__main__':
    unittest.main()
